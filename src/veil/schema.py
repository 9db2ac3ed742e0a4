"""
Schema definitions for Veil.

This module defines the Pydantic models and value types used throughout Veil:
- Pattern: What a rule matches (exact, contains or regex)
- FileRule/EnvRule/CliRule: Ordered policy rules, one kind per target domain
- RuleList: A priority-ordered, immutable list of rules of a single kind
- VeilConfig: The user-facing configuration (explicit rules + named rules)
- PolicyResult/CliResult: The outcome of a policy check
- InterceptRecord: The audit tuple recorded for every blocked access

Design Decisions:
    - Models are immutable (frozen=True) and reject unknown keys
    - Wire names stay camelCase (fileRules, safeAlternatives) via aliases,
      Python callers use snake_case (populate_by_name=True)
    - Regex patterns are compiled once, when the Pattern is built
    - Plain strings in configuration become "contains" patterns
    - Blocking is reported as data; raise_if_blocked() converts on demand
"""

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_serializer,
    field_validator,
    model_validator,
)

from veil.errors import (
    CommandDeniedError,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    EnvDeniedError,
    FileHiddenError,
    PolicyBlockedError,
)


# =============================================================================
# Enums
# =============================================================================


class RuleAction(str, Enum):
    """What happens when a rule matches."""

    ALLOW = "allow"
    DENY = "deny"
    MASK = "mask"
    REWRITE = "rewrite"


class RuleKind(str, Enum):
    """The target domain a rule applies to."""

    FILE = "file"
    ENV = "env"
    CLI = "cli"

    @property
    def list_name(self) -> str:
        """Name of the rule list used in policy references."""
        return f"{self.value}Rules"


class PatternKind(str, Enum):
    """
    How a pattern is compared against a target.

    EXACT only matches the identical string. CONTAINS matches the identical
    string or any target containing it. REGEX is an unanchored search.
    """

    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"


class Platform(str, Enum):
    """Operating system a built-in rule applies to."""

    WINDOWS = "windows"
    DARWIN = "darwin"
    LINUX = "linux"
    ALL = "all"


class RuleCategory(str, Enum):
    """Grouping used to browse the rule registry."""

    SECURITY = "security"
    PRIVACY = "privacy"
    FILESYSTEM = "filesystem"
    CREDENTIALS = "credentials"
    DESTRUCTIVE = "destructive"
    NETWORK = "network"
    SYSTEM = "system"
    TOOLING = "tooling"


class RuleSeverity(str, Enum):
    """How strongly a named rule is enabled. OFF disables it."""

    ERROR = "error"
    WARN = "warn"
    OFF = "off"


class RuleMode(str, Enum):
    """
    Operating mode of a modal rule.

    STRICT blocks the tool and its configuration files.
    PASSIVE allows the tool and attaches guidance for the agent.
    """

    STRICT = "strict"
    PASSIVE = "passive"


class BlockReason:
    """Default reasons reported when a rule does not carry its own."""

    FILE_HIDDEN = "file_hidden_by_policy"
    DIRECTORY_HIDDEN = "directory_hidden_by_policy"
    ENV_DENIED = "env_denied_by_policy"
    COMMAND_DENIED = "command_denied_by_policy"


# Replacement shown for masked files when the rule does not provide one
DEFAULT_FILE_REPLACEMENT = "hidden_by_policy"


# =============================================================================
# Patterns
# =============================================================================


class Pattern(BaseModel):
    """
    A matcher for file paths, variable names and commands.

    Attributes:
        kind: How the value is compared (exact, contains, regex)
        value: The literal string or the regular expression source
        ignore_case: Compile the regex case-insensitively (regex only)

    Raises:
        re.error: At construction, if a regex pattern is malformed
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    kind: PatternKind = Field(..., description="Comparison strategy")
    value: str = Field(..., description="Literal text or regex source")
    ignore_case: bool = Field(
        default=False,
        alias="ignoreCase",
        description="Case-insensitive regex matching",
    )

    _compiled: re.Pattern[str] | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        """Compile regex patterns once."""
        if self.kind == PatternKind.REGEX:
            flags = re.IGNORECASE if self.ignore_case else 0
            self._compiled = re.compile(self.value, flags)

    @property
    def compiled(self) -> re.Pattern[str] | None:
        """The compiled regex, or None for literal patterns."""
        return self._compiled

    @classmethod
    def exact(cls, value: str) -> "Pattern":
        """Build an equality-only pattern."""
        return cls(kind=PatternKind.EXACT, value=value)

    @classmethod
    def contains(cls, value: str) -> "Pattern":
        """Build an equality-or-substring pattern."""
        return cls(kind=PatternKind.CONTAINS, value=value)

    @classmethod
    def regex(cls, source: str, ignore_case: bool = False) -> "Pattern":
        """Build a regex pattern."""
        return cls(kind=PatternKind.REGEX, value=source, ignore_case=ignore_case)

    @classmethod
    def coerce(cls, obj: Any) -> "Pattern":
        """
        Build a Pattern from any of its accepted spellings.

        Accepts an existing Pattern, a plain string (contains), a compiled
        re.Pattern, or a mapping in the YAML form:
            {regex: "^AWS_", ignoreCase: true} / {exact: "..."} / {contains: "..."}

        Raises:
            ValueError: If the object is not a recognised pattern spelling
        """
        if isinstance(obj, Pattern):
            return obj
        if isinstance(obj, str):
            return cls.contains(obj)
        if isinstance(obj, re.Pattern):
            # Inline flags such as (?m) live in the source and survive.
            extra_flags = obj.flags & ~re.compile(obj.pattern).flags & ~re.IGNORECASE
            if extra_flags:
                msg = f"Unsupported regex flags on {obj.pattern!r}: {re.RegexFlag(extra_flags)!r}"
                raise ValueError(msg)
            return cls.regex(obj.pattern, ignore_case=bool(obj.flags & re.IGNORECASE))
        if isinstance(obj, Mapping):
            ignore_case = bool(obj.get("ignoreCase", obj.get("ignore_case", False)))
            for kind in PatternKind:
                if kind.value in obj:
                    return cls(kind=kind, value=obj[kind.value], ignore_case=ignore_case)
            if "kind" in obj and "value" in obj:
                return cls.model_validate(obj)
        msg = f"Invalid pattern: {obj!r}"
        raise ValueError(msg)

    def to_config(self) -> str | dict[str, Any]:
        """Render the pattern in its configuration file form."""
        if self.kind == PatternKind.CONTAINS:
            return self.value
        data: dict[str, Any] = {self.kind.value: self.value}
        if self.ignore_case:
            data["ignoreCase"] = True
        return data

    def __str__(self) -> str:
        if self.kind == PatternKind.REGEX:
            return f"/{self.value}/{'i' if self.ignore_case else ''}"
        if self.kind == PatternKind.EXACT:
            return f"={self.value}"
        return self.value


# =============================================================================
# Rules
# =============================================================================


class BaseRule(BaseModel):
    """
    A single policy rule.

    Rules are evaluated in list order and the first structural match
    decides, regardless of its action.

    Attributes:
        pattern: What the rule matches (config key "match")
        action: What happens on match
        replacement: Mask text, rewrite value or rewritten command
        reason: Explanation shown to the agent (guidance for allow rules)
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    kind: ClassVar[RuleKind]

    pattern: Pattern = Field(..., alias="match", description="What the rule matches")
    action: RuleAction = Field(..., description="Action taken on match")
    replacement: str | None = Field(
        default=None,
        description="Replacement used by mask and rewrite actions",
    )
    reason: str | None = Field(
        default=None,
        description="Block reason, or guidance context for allow rules",
    )

    @field_validator("pattern", mode="before")
    @classmethod
    def coerce_pattern(cls, v: Any) -> Pattern:
        """Accept strings, compiled regexes and YAML mappings."""
        return Pattern.coerce(v)

    @field_serializer("pattern")
    def serialize_pattern(self, pattern: Pattern) -> str | dict[str, Any]:
        """Serialize patterns back to their configuration form."""
        return pattern.to_config()


class FileRule(BaseRule):
    """Rule applied to file and directory paths."""

    kind: ClassVar[RuleKind] = RuleKind.FILE


class EnvRule(BaseRule):
    """Rule applied to environment variable names."""

    kind: ClassVar[RuleKind] = RuleKind.ENV


class CliRule(BaseRule):
    """
    Rule applied to shell command strings.

    Attributes:
        safe_alternatives: Commands suggested to the agent when blocked
    """

    kind: ClassVar[RuleKind] = RuleKind.CLI

    safe_alternatives: list[str] | None = Field(
        default=None,
        alias="safeAlternatives",
        description="Suggested commands when this rule blocks",
    )


RULE_TYPES: dict[RuleKind, type[BaseRule]] = {
    RuleKind.FILE: FileRule,
    RuleKind.ENV: EnvRule,
    RuleKind.CLI: CliRule,
}

R = TypeVar("R", bound=BaseRule)


@dataclass(frozen=True)
class RuleList(Generic[R]):
    """
    An ordered, immutable list of rules of one kind.

    Earlier entries have higher priority. The kind fixes the list name used
    in policy references ("fileRules", "envRules", "cliRules").
    """

    kind: RuleKind
    rules: tuple[R, ...] = ()

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        for rule in rules:
            if rule.kind != self.kind:
                msg = f"Cannot put a {rule.kind.value} rule in {self.kind.list_name}"
                raise ValueError(msg)
        object.__setattr__(self, "rules", rules)

    @classmethod
    def of(cls, kind: RuleKind, rules: Iterable[Any] = ()) -> "RuleList":
        """Build a list from rule objects or their mapping form."""
        rule_type = RULE_TYPES[kind]
        return cls(
            kind=kind,
            rules=tuple(
                r if isinstance(r, BaseRule) else rule_type.model_validate(r)
                for r in rules
            ),
        )

    @property
    def name(self) -> str:
        return self.kind.list_name

    def merge(self, *others: "RuleList") -> "RuleList":
        """
        Concatenate lists, keeping self first.

        Raises:
            ValueError: If any list holds a different kind of rule
        """
        combined = list(self.rules)
        for other in others:
            if other.kind != self.kind:
                msg = f"Cannot merge {other.name} into {self.name}"
                raise ValueError(msg)
            combined.extend(other.rules)
        return RuleList(kind=self.kind, rules=tuple(combined))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[R]:
        return iter(self.rules)

    def __getitem__(self, index: int) -> R:
        return self.rules[index]


# =============================================================================
# Configuration Models
# =============================================================================


class NormalizeOptions(BaseModel):
    """
    Which bypass-protection transformations the command normalizer applies.

    All transformations are enabled by default.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    strip_paths: bool = Field(default=True, alias="stripPaths")
    unwrap_shells: bool = Field(default=True, alias="unwrapShells")
    unwrap_eval: bool = Field(default=True, alias="unwrapEval")
    strip_package_runners: bool = Field(default=True, alias="stripPackageRunners")


class RuleSetting(BaseModel):
    """
    How a named rule from the registry is enabled.

    Accepts the short forms used in configuration files:
        "warn"
        ["error", {mode: strict, message: "..."}]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    severity: RuleSeverity = Field(..., description="error, warn or off")
    mode: RuleMode | None = Field(default=None, description="Modal rule mode override")
    message: str | None = Field(default=None, description="Strict mode block message")
    context: str | None = Field(default=None, description="Passive mode guidance")

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Expand the string and [severity, options] shorthands."""
        if isinstance(data, (str, RuleSeverity)):
            return {"severity": data}
        if isinstance(data, (list, tuple)):
            if not 1 <= len(data) <= 2:
                msg = f"Rule setting must be [severity] or [severity, options]: {data!r}"
                raise ValueError(msg)
            expanded: dict[str, Any] = {"severity": data[0]}
            if len(data) == 2:
                if not isinstance(data[1], Mapping):
                    msg = f"Rule options must be a mapping: {data[1]!r}"
                    raise ValueError(msg)
                expanded.update(data[1])
            return expanded
        return data

    @property
    def enabled(self) -> bool:
        return self.severity != RuleSeverity.OFF


class VeilConfig(BaseModel):
    """
    The complete Veil configuration.

    Attributes:
        file_rules: Explicit rules for file and directory paths
        env_rules: Explicit rules for environment variable names
        cli_rules: Explicit rules for shell commands
        rules: Named registry rules to enable, in order
        bypass_protection: True/False, or per-transformation options
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    file_rules: list[FileRule] = Field(default_factory=list, alias="fileRules")
    env_rules: list[EnvRule] = Field(default_factory=list, alias="envRules")
    cli_rules: list[CliRule] = Field(default_factory=list, alias="cliRules")
    rules: dict[str, RuleSetting] = Field(
        default_factory=dict,
        description="Named rule id -> setting",
    )
    bypass_protection: bool | NormalizeOptions = Field(
        default=True,
        alias="bypassProtection",
        description="Command normalization before CLI matching",
    )

    def rule_list(self, kind: RuleKind) -> RuleList:
        """Return the explicit rules of one kind as a RuleList."""
        rules = {
            RuleKind.FILE: self.file_rules,
            RuleKind.ENV: self.env_rules,
            RuleKind.CLI: self.cli_rules,
        }[kind]
        return RuleList(kind=kind, rules=tuple(rules))


def merge_configs(*configs: VeilConfig) -> VeilConfig:
    """
    Combine configurations, giving earlier ones priority.

    Rule lists are concatenated in argument order. For named rules the first
    config that mentions an id decides its setting. Bypass protection comes
    from the first config.
    """
    if not configs:
        return VeilConfig()

    named: dict[str, RuleSetting] = {}
    for config in configs:
        for rule_id, setting in config.rules.items():
            named.setdefault(rule_id, setting)

    return VeilConfig(
        file_rules=[r for c in configs for r in c.file_rules],
        env_rules=[r for c in configs for r in c.env_rules],
        cli_rules=[r for c in configs for r in c.cli_rules],
        rules=named,
        bypass_protection=configs[0].bypass_protection,
    )


@dataclass
class Injectors:
    """
    Caller-supplied overrides consulted before any rule.

    Each callable returns the value to hand to the agent, or None to fall
    through to rule evaluation.

    Attributes:
        files: path -> replacement file content
        env: variable name -> replacement value
        directories: path -> replacement listing
    """

    files: Callable[[str], str | None] | None = None
    env: Callable[[str], str | None] | None = None
    directories: Callable[[str], list[str] | None] | None = None


# =============================================================================
# Result Models
# =============================================================================


class BlockDetails(BaseModel):
    """Structured details attached to a blocked result."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    target: str = Field(..., description="The path, variable or raw command")
    policy: str = Field(..., description="Policy reference, e.g. cliRules[3]")
    action: RuleAction = Field(..., description="Action of the matching rule")
    replacement: str | None = Field(default=None, description="Mask replacement")
    safe_alternatives: list[str] | None = Field(
        default=None,
        alias="safeAlternatives",
        description="Suggested commands",
    )


class PolicyResult(BaseModel):
    """
    The outcome of a file, directory or env check.

    Allowed results carry the value the agent sees. Blocked results carry a
    reason and BlockDetails. When a rule matched, policy and action are set
    on both allowed and blocked results.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ok: bool = Field(..., description="Whether access is granted")
    blocked: bool = Field(default=False, description="Whether access is blocked")
    reason: str | None = Field(default=None, description="Why access was blocked")
    details: BlockDetails | None = Field(default=None, description="Block details")
    value: Any = Field(default=None, description="Value visible to the agent")
    context: str | None = Field(default=None, description="Guidance for the agent")
    policy: str | None = Field(default=None, description="Matching policy reference")
    action: RuleAction | None = Field(default=None, description="Matching rule action")
    kind: RuleKind | None = Field(default=None, description="Target domain checked")

    @classmethod
    def allow(
        cls,
        value: Any = None,
        *,
        context: str | None = None,
        policy: str | None = None,
        action: RuleAction | None = None,
        kind: RuleKind | None = None,
        **extra: Any,
    ) -> "PolicyResult":
        """Create an allowed result."""
        return cls(
            ok=True,
            value=value,
            context=context,
            policy=policy,
            action=action,
            kind=kind,
            **extra,
        )

    @classmethod
    def block(
        cls,
        reason: str,
        details: BlockDetails,
        *,
        kind: RuleKind | None = None,
        **extra: Any,
    ) -> "PolicyResult":
        """Create a blocked result."""
        return cls(
            ok=False,
            blocked=True,
            reason=reason,
            details=details,
            policy=details.policy,
            action=details.action,
            kind=kind,
            **extra,
        )

    def _allowed_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def to_dict(self) -> dict[str, Any]:
        """Render the stable external result shape."""
        if self.blocked:
            data: dict[str, Any] = {"ok": False, "blocked": True, "reason": self.reason}
            if self.details is not None:
                data["details"] = self.details.model_dump(
                    mode="json", by_alias=True, exclude_none=True
                )
            return data
        data = self._allowed_dict()
        if self.context is not None:
            data["context"] = self.context
        return data

    def raise_if_blocked(self) -> "PolicyResult":
        """
        Raise the matching PolicyBlockedError if this result is blocked.

        Returns:
            self, so the call can be chained on allowed results
        """
        if not self.blocked:
            return self

        target = self.details.target if self.details else ""
        action = self.action.value if self.action else None

        if self.kind == RuleKind.CLI:
            alternatives = self.details.safe_alternatives if self.details else None
            raise CommandDeniedError(
                target=target,
                policy=self.policy,
                action=action,
                reason=self.reason or "",
                safe_alternatives=list(alternatives or []),
            )

        error_type = {
            RuleKind.FILE: FileHiddenError,
            RuleKind.ENV: EnvDeniedError,
        }.get(self.kind, PolicyBlockedError)
        raise error_type(
            target=target,
            policy=self.policy,
            action=action,
            reason=self.reason or "",
        )


class CliResult(PolicyResult):
    """
    The outcome of a command check.

    Attributes:
        command: The command to run (rewritten when a rewrite rule matched)
        normalization: Which bypass transformations exposed the match
    """

    command: str | None = Field(default=None, description="Command to execute")
    normalization: str | None = Field(
        default=None,
        description="Bypass transformations applied before the match",
    )

    @property
    def safe_alternatives(self) -> list[str] | None:
        return self.details.safe_alternatives if self.details else None

    def _allowed_dict(self) -> dict[str, Any]:
        return {"ok": True, "command": self.command}


class InterceptRecord(BaseModel):
    """An audit entry for a blocked access."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: RuleKind = Field(..., description="file, env or cli")
    target: str = Field(..., description="What the agent tried to access")
    action: RuleAction = Field(..., description="Action of the matching rule")
    policy: str | None = Field(default=None, description="Matching policy reference")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the access was intercepted",
    )


# =============================================================================
# YAML Loading Helpers
# =============================================================================

CONFIG_FILE_NAMES = ("veil.yaml", "veil.yml", ".veil.yaml")


def load_config(path: Path | str) -> VeilConfig:
    """
    Load a configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated VeilConfig object

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigParseError: If the file is not valid YAML
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigNotFoundError(path=str(path))

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(path=str(path), underlying_error=str(e)) from e

    return _validate_config(data, str(path))


def load_config_from_string(content: str) -> VeilConfig:
    """Load a configuration from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigParseError(underlying_error=str(e)) from e
    return _validate_config(data, None)


def _validate_config(data: Any, path: str | None) -> VeilConfig:
    if data is None:
        return VeilConfig()
    if not isinstance(data, dict):
        raise ConfigError(
            message=f"Config must be a mapping, got {type(data).__name__}",
            path=path,
        )
    return VeilConfig.model_validate(data)


def find_config_file(start: Path | str | None = None) -> Path | None:
    """
    Find the nearest configuration file.

    Looks for veil.yaml, veil.yml or .veil.yaml in the start directory
    (default: the current directory) and then in each parent.
    """
    directory = Path(start) if start is not None else Path.cwd()
    directory = directory.resolve()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def dump_config(config: VeilConfig) -> dict[str, Any]:
    """Render a configuration back to its YAML/JSON wire form."""
    return config.model_dump(mode="json", by_alias=True, exclude_none=True)
