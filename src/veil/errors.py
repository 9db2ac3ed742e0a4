"""
Exception hierarchy for Veil.

All Veil exceptions inherit from VeilError, allowing callers to catch
all Veil-specific exceptions with a single except clause.

Policy decisions are returned as data (PolicyResult). These exceptions are
raised only at the outer layers:
    - PolicyBlockedError: raised on demand via PolicyResult.raise_if_blocked()
    - ConfigError: configuration file missing or unparseable
    - RuleNotFoundError: strict registry lookup of an unknown rule id

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (target, policy ref, rule id where applicable)
    - All errors provide actionable suggestions where possible
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Policy errors: 1xxx
ERROR_POLICY_BLOCKED = 1001
ERROR_POLICY_FILE_HIDDEN = 1002
ERROR_POLICY_ENV_DENIED = 1003
ERROR_POLICY_COMMAND_DENIED = 1004

# Config errors: 2xxx
ERROR_CONFIG_INVALID = 2001
ERROR_CONFIG_NOT_FOUND = 2002
ERROR_CONFIG_PARSE = 2003

# Registry errors: 3xxx
ERROR_RULE_NOT_FOUND = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class VeilError(Exception):
    """
    Base exception for all Veil errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Policy Errors
# =============================================================================


@dataclass
class PolicyBlockedError(VeilError):
    """
    Raised when a caller asks for a blocked result to be turned into an error.

    Attributes:
        target: The file path, variable name or command that was blocked
        policy: Policy reference of the matching rule (e.g. "cliRules[3]")
        action: The rule action that caused the block
        reason: The block reason reported to the agent
    """

    target: str = ""
    policy: str | None = None
    action: str | None = None
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Blocked by policy: {self.target}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_POLICY_BLOCKED
        self.context.update({
            "target": self.target,
            "policy": self.policy,
            "action": self.action,
            "reason": self.reason,
        })


@dataclass
class FileHiddenError(PolicyBlockedError):
    """Raised when a file or directory is hidden by policy."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"File hidden by policy: {self.target}"
        if self.code == 0:
            self.code = ERROR_POLICY_FILE_HIDDEN
        super().__post_init__()


@dataclass
class EnvDeniedError(PolicyBlockedError):
    """Raised when an environment variable is denied by policy."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Environment variable denied by policy: {self.target}"
        if self.code == 0:
            self.code = ERROR_POLICY_ENV_DENIED
        super().__post_init__()


@dataclass
class CommandDeniedError(PolicyBlockedError):
    """Raised when a shell command is denied by policy."""

    safe_alternatives: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Command denied by policy: {self.target}"
        if self.code == 0:
            self.code = ERROR_POLICY_COMMAND_DENIED
        if not self.suggestion and self.safe_alternatives:
            self.suggestion = "Try instead: " + ", ".join(self.safe_alternatives)
        super().__post_init__()
        self.context["safe_alternatives"] = self.safe_alternatives


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(VeilError):
    """
    Base class for configuration errors.

    Attributes:
        path: The configuration file involved, if any
    """

    path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["path"] = self.path


@dataclass
class ConfigNotFoundError(ConfigError):
    """Raised when a configuration file does not exist."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Config file not found: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Create a veil.yaml or pass --config with a valid path"
        super().__post_init__()


@dataclass
class ConfigParseError(ConfigError):
    """Raised when a configuration file is not valid YAML."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not parse config: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_PARSE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Registry Errors
# =============================================================================


@dataclass
class RuleNotFoundError(VeilError):
    """Raised when a rule id is not registered."""

    rule_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Rule not found: {self.rule_id}"
        if self.code == 0:
            self.code = ERROR_RULE_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Run 'veil list-rules' to see the available rule ids"
        self.context["rule_id"] = self.rule_id
