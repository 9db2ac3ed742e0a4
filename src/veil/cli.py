"""
CLI entry point for Veil.

This module provides the Typer-based command-line interface for Veil.

Commands:
    check        Check one file path, variable or command against policy
    explain      Show the decision and every rule that matched
    scan         List the files in a directory tree that would be hidden
    list-rules   List the built-in named rules
    show-config  Show the active configuration
    init         Write a veil.yaml with the recommended rules

Configuration:
    --config PATH, or the nearest veil.yaml / veil.yml / .veil.yaml.
    Without either, the recommended rules for --platform (or the current
    platform) apply.

Architecture Note:
    The CLI is the outer layer: it reads config files, the real environment
    and the filesystem, then hands plain strings to Veil for decisions.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from veil import __version__
from veil.engine import Veil
from veil.errors import VeilError
from veil.report import (
    config_to_dict,
    definition_to_dict,
    explanation_to_dict,
    generate_json,
    print_config,
    print_explanation,
    print_result,
    print_rules_table,
    result_to_dict,
)
from veil.rules.registry import detect_platform, get_default_registry, recommended_rules
from veil.schema import (
    Platform,
    RuleCategory,
    RuleKind,
    VeilConfig,
    dump_config,
    find_config_file,
    load_config,
)

# Initialize Typer app with metadata
app = typer.Typer(
    name="veil",
    help="Decide what an AI agent may see and run.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "veil.yaml"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]veil[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Veil - Policy resolution for AI agents.

    Check files, environment variables and shell commands against the
    rules an agent runs under.
    """
    pass


# =============================================================================
# Shared Options
# =============================================================================

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a veil.yaml. Defaults to the nearest one, or the recommended rules.",
        resolve_path=True,
    ),
]

PlatformOption = Annotated[
    Optional[Platform],
    typer.Option(
        "--platform",
        help="Platform for named rules. Defaults to the current one.",
        case_sensitive=False,
    ),
]

TypeOption = Annotated[
    RuleKind,
    typer.Option(
        "--type",
        "-t",
        help="What the target is: file, env or cli.",
        case_sensitive=False,
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]


def _load_config(
    config_path: Path | None,
    platform: Platform | None = None,
    quiet: bool = False,
) -> VeilConfig:
    """Load the configuration, falling back to the recommended rules."""
    path = config_path or find_config_file()
    if path is None:
        if not quiet:
            console.print(
                f"[yellow]No {DEFAULT_CONFIG_NAME} found. Using recommended rules.[/yellow]"
            )
        return VeilConfig(rules=recommended_rules(platform))

    try:
        return load_config(path)
    except (VeilError, ValidationError) as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _build_veil(config_path: Path | None, platform: Platform | None, quiet: bool) -> Veil:
    config = _load_config(config_path, platform, quiet=quiet)
    return Veil(config, environ=dict(os.environ), platform=platform)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def check(
    target: Annotated[str, typer.Argument(help="File path, variable name or command.")],
    kind: TypeOption = RuleKind.FILE,
    config: ConfigOption = None,
    platform: PlatformOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Check a single target against policy.

    Exits with code 0 when allowed and 1 when blocked.

    Example:
        $ veil check 'bash -c "rm -rf /"' --type cli
    """
    veil = _build_veil(config, platform, quiet=json_output)

    if kind == RuleKind.CLI:
        result = veil.check_command(target)
    elif kind == RuleKind.ENV:
        result = veil.get_env(target)
    else:
        result = veil.check_file(target)

    if json_output:
        print(generate_json(result_to_dict(result)))
    else:
        print_result(console, target, kind, result)

    if result.blocked:
        raise typer.Exit(code=1)


@app.command()
def explain(
    target: Annotated[str, typer.Argument(help="File path, variable name or command.")],
    kind: TypeOption = RuleKind.FILE,
    config: ConfigOption = None,
    platform: PlatformOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Explain why a target is allowed or blocked.

    Shows the decision, the command forms checked (for cli), and every rule
    that matched in priority order.

    Example:
        $ veil explain .env.local --type file
    """
    veil = _build_veil(config, platform, quiet=json_output)
    explanation = veil.explain(target, kind)

    if json_output:
        print(generate_json(explanation_to_dict(explanation)))
    else:
        print_explanation(console, explanation)


@app.command()
def scan(
    directory: Annotated[
        Path,
        typer.Option(
            "--dir",
            "-d",
            help="Directory to scan.",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ] = Path("."),
    depth: Annotated[
        int,
        typer.Option("--depth", help="Maximum directory depth.", min=0),
    ] = 5,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show allowed files and block reasons."),
    ] = False,
    config: ConfigOption = None,
    platform: PlatformOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Scan a project for files an agent would not be allowed to see.

    Hidden directories are reported once and not descended into.

    Example:
        $ veil scan --dir . --depth 3
    """
    veil = _build_veil(config, platform, quiet=json_output)
    blocked: list[tuple[str, str]] = []
    allowed: list[str] = []

    for relative, is_dir in _walk(directory, depth, veil):
        result = veil.check_directory(relative) if is_dir else veil.check_file(relative)
        if result.blocked:
            blocked.append((relative, result.reason or ""))
        elif not is_dir:
            allowed.append(relative)

    if json_output:
        output = {
            "directory": str(directory),
            "blocked": [{"path": p, "reason": r} for p, r in blocked],
            "allowed": allowed,
        }
        print(generate_json(output))
        return

    console.print(f"[cyan]Scanning {directory}...[/cyan]")
    console.print()
    console.print("[bold red]Blocked[/bold red]")
    if not blocked:
        console.print("  [dim]No sensitive files found[/dim]")
    for path, reason in blocked[:30]:
        console.print(f"  [red]✗[/red] {escape(path)}")
        if verbose and reason:
            console.print(f"    [dim]{escape(reason.splitlines()[0])}[/dim]")
    if len(blocked) > 30:
        console.print(f"  [dim]... and {len(blocked) - 30} more[/dim]")

    if verbose:
        console.print()
        console.print("[bold green]Allowed[/bold green]")
        for path in allowed[:20]:
            console.print(f"  [green]✓[/green] {escape(path)}")
        if len(allowed) > 20:
            console.print(f"  [dim]... and {len(allowed) - 20} more[/dim]")

    console.print()
    console.print(f"[dim]Blocked: {len(blocked)} | Allowed: {len(allowed)}[/dim]")


def _walk(root: Path, max_depth: int, veil: Veil) -> Iterator[tuple[str, bool]]:
    """Yield (relative path, is_dir) below root, not entering hidden directories."""
    pending: list[tuple[Path, int]] = [(root, 0)]
    while pending:
        current, level = pending.pop()
        try:
            entries = sorted(current.iterdir())
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", current, e)
            continue
        for entry in entries:
            if entry.is_symlink():
                continue
            relative = entry.relative_to(root).as_posix()
            if entry.is_dir():
                yield relative, True
                if level < max_depth and veil.file_engine.is_visible(relative):
                    pending.append((entry, level + 1))
            else:
                yield relative, False


@app.command("list-rules")
def list_rules(
    category: Annotated[
        Optional[RuleCategory],
        typer.Option(
            "--category",
            help="Only show rules in this category.",
            case_sensitive=False,
        ),
    ] = None,
    platform: PlatformOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    List the built-in named rules.

    Example:
        $ veil list-rules --category credentials --platform linux
    """
    registry = get_default_registry()
    rules = registry.by_platform(platform) if platform else registry.all_rules()
    if category is not None:
        rules = [r for r in rules if r.category == category]

    if json_output:
        print(generate_json([definition_to_dict(r) for r in rules]))
    else:
        print_rules_table(console, rules)


@app.command("show-config")
def show_config(
    config: ConfigOption = None,
    resolved: Annotated[
        bool,
        typer.Option(
            "--resolved",
            "-r",
            help="Expand named rules into the rule lists.",
        ),
    ] = False,
    platform: PlatformOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Show the active configuration.

    Example:
        $ veil show-config --resolved --json
    """
    loaded = _load_config(config, platform, quiet=json_output)
    if resolved:
        loaded = Veil(loaded, platform=platform).config

    if json_output:
        print(generate_json(config_to_dict(loaded)))
    else:
        print_config(console, loaded)


@app.command()
def init(
    directory: Annotated[
        Path,
        typer.Option(
            "--dir",
            "-d",
            help="Where to write veil.yaml.",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ] = Path("."),
    platform: PlatformOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing veil.yaml."),
    ] = False,
) -> None:
    """
    Write a veil.yaml enabling the recommended rules.

    Example:
        $ veil init --platform linux
    """
    path = directory / DEFAULT_CONFIG_NAME
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists. Use --force to overwrite.[/yellow]")
        raise typer.Exit(code=1)

    target = platform or detect_platform()
    config = VeilConfig(rules=recommended_rules(target))
    with path.open("w") as f:
        yaml.safe_dump(dump_config(config), f, sort_keys=False)

    console.print(f"[green]✓ Created {path} with the recommended rules for {target.value}[/green]")
