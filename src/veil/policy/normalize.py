"""
Command normalization (bypass protection).

An agent that is refused `git push` may try `bash -c "git push"`,
`eval 'git push'`, `/usr/bin/git push` or `npx ...`. The normalizer derives
the plain forms of such commands so every variant can be checked against
the CLI rules.

Transformations, applied in order to the current form of the command:
    1. Shell wrappers:   bash|sh|zsh|dash|ksh|csh|tcsh|fish [-flags] -c "..."
                         (repeated for nested wrappers, at most 5 levels)
    2. eval wrappers:    eval "..." / eval '...' / eval ...
    3. Absolute paths:   /usr/bin/git push -> git push
    4. Package runners:  npx / pnpx / yarn dlx / bunx prefixes

The first variant is always the trimmed raw command. Variants are trimmed
and de-duplicated, preserving order.
"""

import re
from collections.abc import Iterator

from veil.schema import NormalizeOptions

# Nested shell wrappers unwrapped before giving up
MAX_UNWRAP_DEPTH = 5

_SHELLS = r"(?:bash|sh|zsh|dash|ksh|csh|tcsh|fish)"

SHELL_WRAPPER_PATTERNS = (
    re.compile(rf"^{_SHELLS}\s+(?:-\w+\s+)*-c\s+[\"'](.+?)[\"']\s*$"),
    re.compile(rf"^{_SHELLS}\s+(?:-\w+\s+)*-c\s+(.+)$"),
)

EVAL_PATTERNS = (
    re.compile(r"^eval\s+[\"'](.+?)[\"']\s*$"),
    re.compile(r"^eval\s+(.+)$"),
)

ABSOLUTE_PATH_PATTERN = re.compile(r"^(/[\w\-.]+)+/")

PACKAGE_RUNNER_PATTERN = re.compile(r"^(?:npx|pnpx|yarn\s+dlx|bunx)\s+")

LABEL_SHELL = "subshell wrapper stripped"
LABEL_EVAL = "eval wrapper stripped"
LABEL_PATH = "absolute path stripped"
LABEL_RUNNER = "package runner stripped"
LABEL_FALLBACK = "command normalized"


def _unwrap(command: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        match = pattern.match(command)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def _transformations(raw: str, options: NormalizeOptions) -> Iterator[tuple[str, str]]:
    """Yield (label, command) for each transformation applied to raw."""
    current = raw.strip()

    if options.unwrap_shells:
        for _ in range(MAX_UNWRAP_DEPTH):
            inner = _unwrap(current, SHELL_WRAPPER_PATTERNS)
            if inner is None:
                break
            current = inner
            yield LABEL_SHELL, current

    if options.unwrap_eval:
        inner = _unwrap(current, EVAL_PATTERNS)
        if inner is not None:
            current = inner
            yield LABEL_EVAL, current

    if options.strip_paths and ABSOLUTE_PATH_PATTERN.match(current):
        current = ABSOLUTE_PATH_PATTERN.sub("", current, count=1).strip()
        yield LABEL_PATH, current

    if options.strip_package_runners and PACKAGE_RUNNER_PATTERN.match(current):
        current = PACKAGE_RUNNER_PATTERN.sub("", current, count=1).strip()
        yield LABEL_RUNNER, current


def normalize_command(raw: str, options: NormalizeOptions | None = None) -> list[str]:
    """
    Derive the command variants to check against CLI rules.

    Args:
        raw: The command exactly as the agent issued it
        options: Which transformations to apply (all enabled by default)

    Returns:
        Ordered, de-duplicated variants, starting with raw.strip().
        Empty for empty or whitespace-only input.
    """
    options = options or NormalizeOptions()
    variants: list[str] = []

    def add(command: str) -> None:
        if command and command not in variants:
            variants.append(command)

    add(raw.strip())
    for _, command in _transformations(raw, options):
        add(command)
    return variants


def is_wrapped_command(raw: str) -> bool:
    """Check whether a command uses any wrapper the normalizer strips."""
    command = raw.strip()
    return (
        any(p.match(command) for p in SHELL_WRAPPER_PATTERNS)
        or any(p.match(command) for p in EVAL_PATTERNS)
        or ABSOLUTE_PATH_PATTERN.match(command) is not None
        or PACKAGE_RUNNER_PATTERN.match(command) is not None
    )


def describe_normalization(raw: str, normalized: str) -> str | None:
    """
    Explain which transformations turn raw into normalized.

    Returns:
        None when the two are identical after trimming, otherwise a
        comma-separated list such as
        "subshell wrapper stripped, package runner stripped".
    """
    target = normalized.strip()
    if raw.strip() == target:
        return None

    labels: list[str] = []
    for label, command in _transformations(raw, NormalizeOptions()):
        if label not in labels:
            labels.append(label)
        if command == target:
            return ", ".join(labels)
    return LABEL_FALLBACK


def resolve_bypass_options(setting: bool | NormalizeOptions | None) -> NormalizeOptions | None:
    """
    Turn a bypass_protection setting into normalizer options.

    True or None enables every transformation, False disables normalization.
    """
    if setting is None or setting is True:
        return NormalizeOptions()
    if setting is False:
        return None
    return setting
