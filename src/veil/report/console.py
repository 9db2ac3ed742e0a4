"""
Console output for Veil.

Renders decisions, explanations, rule listings and configurations with
Rich, for the `veil` command line.

Design Principles:
    - Status at a glance: icons and colors for allowed/blocked
    - The deciding rule is always shown first
    - Long guidance text is shown in full only where it was asked for
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from veil.engine import Explanation
from veil.rules.base import ModalRuleDefinition, RuleDefinition
from veil.schema import PolicyResult, RuleAction, RuleKind, VeilConfig

# Status icons
ICON_ALLOWED = "[green]✓[/green]"
ICON_BLOCKED = "[red]✗[/red]"
ICON_CONTEXT = "[cyan]ℹ[/cyan]"

ACTION_STYLES = {
    RuleAction.ALLOW: "green",
    RuleAction.DENY: "red",
    RuleAction.MASK: "yellow",
    RuleAction.REWRITE: "magenta",
}


def print_result(
    console: Console,
    target: str,
    kind: RuleKind,
    result: PolicyResult,
) -> None:
    """Print a single decision."""
    header = Text()
    header.append(f" {kind.value} ", style="bold")
    header.append(target, style="bold cyan")
    header.append(" │ ", style="dim")
    if result.blocked:
        header.append("BLOCKED", style="bold red")
    else:
        header.append("ALLOWED", style="bold green")
    console.print(Panel(header, expand=False))

    if result.blocked:
        console.print(f"  {ICON_BLOCKED} [red]{escape(result.reason or '')}[/red]")
        if result.details is not None:
            console.print(f"  [dim]Policy:[/dim]  {result.details.policy}")
            console.print(f"  [dim]Action:[/dim]  {result.details.action.value}")
            if result.details.replacement is not None:
                console.print(f"  [dim]Replacement:[/dim] {escape(result.details.replacement)}")
            if result.details.safe_alternatives:
                console.print("  [dim]Safe alternatives:[/dim]")
                for alternative in result.details.safe_alternatives:
                    console.print(f"    • {escape(alternative)}")
        return

    console.print(f"  {ICON_ALLOWED} {_format_value(kind, result)}")
    if result.policy:
        console.print(f"  [dim]Policy:[/dim]  {result.policy} ({result.action.value if result.action else '-'})")
    else:
        console.print("  [dim]No rule matched (allowed by default)[/dim]")
    if result.context:
        console.print(f"  {ICON_CONTEXT} [dim]Context:[/dim]")
        console.print(Panel(escape(result.context), expand=False, border_style="cyan"))


def _format_value(kind: RuleKind, result: PolicyResult) -> str:
    command = getattr(result, "command", None)
    if kind == RuleKind.CLI and command is not None:
        return f"[dim]command:[/dim] {escape(command)}"
    if result.value is None:
        return "[dim]value: (unset)[/dim]"
    if result.value is True:
        return "[dim]visible[/dim]"
    return f"[dim]value:[/dim] {escape(str(result.value))}"


def print_explanation(console: Console, explanation: Explanation) -> None:
    """Print a decision followed by every rule that matched."""
    print_result(console, explanation.target, explanation.kind, explanation.result)
    console.print()

    if len(explanation.checked) > 1:
        console.print("[bold]Checked forms[/bold]")
        for index, form in enumerate(explanation.checked):
            console.print(f"  {index}. {escape(form)}")
        console.print()

    if not explanation.matches:
        console.print("[dim]No rules matched.[/dim]")
        return

    console.print("[bold]Matching rules[/bold]")
    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Policy", style="cyan")
    table.add_column("Action", width=8)
    table.add_column("Pattern", overflow="fold")
    table.add_column("Checked form", overflow="fold")
    table.add_column("Reason", overflow="fold")

    for index, (form, match) in enumerate(explanation.matches, start=1):
        style = ACTION_STYLES[match.action]
        marker = " [bold](decides)[/bold]" if index == 1 else ""
        table.add_row(
            str(index),
            match.policy_ref + marker,
            f"[{style}]{match.action.value}[/{style}]",
            escape(str(match.rule.pattern)),
            escape(form),
            escape(_first_line(match.rule.reason)),
        )
    console.print(table)


def _first_line(text: str | None) -> str:
    if not text:
        return ""
    return text.strip().splitlines()[0]


def print_rules_table(console: Console, rules: list[RuleDefinition]) -> None:
    """Print registry entries as a table."""
    if not rules:
        console.print("[dim]No rules found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Rule", style="cyan")
    table.add_column("Category")
    table.add_column("Platforms")
    table.add_column("Severity", width=8)
    table.add_column("Mode", width=8)
    table.add_column("Description")

    for rule in rules:
        severity = rule.default_severity.value
        if severity == "error":
            severity_display = "[red]error[/red]"
        elif severity == "warn":
            severity_display = "[yellow]warn[/yellow]"
        else:
            severity_display = f"[dim]{severity}[/dim]"

        mode = rule.default_mode.value if isinstance(rule, ModalRuleDefinition) else "-"

        table.add_row(
            rule.id,
            rule.category.value,
            ", ".join(p.value for p in rule.platforms),
            severity_display,
            mode,
            rule.description,
        )

    console.print(table)
    console.print(f"[dim]{len(rules)} rules[/dim]")


def print_config(console: Console, config: VeilConfig) -> None:
    """Print the rule lists and named rules of a configuration."""
    for kind in RuleKind:
        rules = config.rule_list(kind)
        console.print(f"[bold]{rules.name}[/bold] [dim]({len(rules)})[/dim]")
        if not rules:
            console.print("  [dim]none[/dim]")
            continue

        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("#", style="dim", width=4, justify="right")
        table.add_column("Pattern", overflow="fold")
        table.add_column("Action", width=8)
        table.add_column("Reason", overflow="fold")
        for index, rule in enumerate(rules):
            style = ACTION_STYLES[rule.action]
            table.add_row(
                str(index),
                escape(str(rule.pattern)),
                f"[{style}]{rule.action.value}[/{style}]",
                escape(_first_line(rule.reason)),
            )
        console.print(table)

    if config.rules:
        console.print("[bold]Named rules[/bold]")
        for rule_id, setting in config.rules.items():
            mode = f" [dim]({setting.mode.value})[/dim]" if setting.mode else ""
            console.print(f"  • {rule_id}: {setting.severity.value}{mode}")

    bypass = config.bypass_protection
    if bypass is True:
        bypass_display = "[green]on[/green]"
    elif bypass is False:
        bypass_display = "[red]off[/red]"
    else:
        enabled = [name for name, on in bypass.model_dump().items() if on]
        bypass_display = ", ".join(enabled) or "[red]off[/red]"
    console.print(f"[dim]Bypass protection:[/dim] {bypass_display}")
