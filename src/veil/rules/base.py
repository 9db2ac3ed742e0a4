"""
Rule definitions for the Veil rule registry.

A rule definition is a named, documented bundle of concrete rules that a
configuration can switch on by id:

    rules:
      linux/no-delete-root: error
      tooling/git: [warn, {mode: strict}]

Two shapes exist:
    - RuleDefinition: a fixed set of file/env/cli rules
    - ModalRuleDefinition: generates different rules per mode
        strict  -> deny the tool and its config files
        passive -> allow the tool and attach guidance as context
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    Pattern,
    Platform,
    RuleAction,
    RuleCategory,
    RuleMode,
    RuleSeverity,
    VeilConfig,
)


class ModalRuleOptions(BaseModel):
    """Per-configuration overrides for a modal rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str | None = Field(default=None, description="Strict mode block message")
    context: str | None = Field(default=None, description="Passive mode guidance")


@dataclass(frozen=True)
class GeneratedRules:
    """Concrete rules produced by a rule definition."""

    file_rules: tuple[FileRule, ...] = ()
    env_rules: tuple[EnvRule, ...] = ()
    cli_rules: tuple[CliRule, ...] = ()

    def to_config(self) -> VeilConfig:
        return VeilConfig(
            file_rules=list(self.file_rules),
            env_rules=list(self.env_rules),
            cli_rules=list(self.cli_rules),
        )

    def __len__(self) -> int:
        return len(self.file_rules) + len(self.env_rules) + len(self.cli_rules)


class RuleDefinition(BaseModel):
    """
    A named rule that contributes a fixed set of concrete rules.

    Attributes:
        id: Unique identifier, "<group>/<name>" by convention
        description: One-line summary shown by list-rules
        category: Grouping for browsing
        platforms: Operating systems the rule applies to ("all" for any)
        default_severity: Severity used by the recommended preset
        file_rules / env_rules / cli_rules: The concrete rules
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    supports_mode: ClassVar[bool] = False

    id: str = Field(..., min_length=1, description="Unique rule id")
    description: str = Field(..., description="What the rule protects")
    category: RuleCategory = Field(..., description="Rule category")
    platforms: list[Platform] = Field(
        default_factory=lambda: [Platform.ALL],
        description="Applicable platforms",
    )
    default_severity: RuleSeverity = Field(
        default=RuleSeverity.ERROR,
        description="Severity in the recommended preset",
    )
    file_rules: list[FileRule] = Field(default_factory=list)
    env_rules: list[EnvRule] = Field(default_factory=list)
    cli_rules: list[CliRule] = Field(default_factory=list)

    def applies_to(self, platform: Platform) -> bool:
        """Check whether the rule is relevant on a platform."""
        return Platform.ALL in self.platforms or platform in self.platforms

    def generate(
        self,
        mode: RuleMode | None = None,
        options: ModalRuleOptions | None = None,
    ) -> GeneratedRules:
        """Return the rule's concrete rules. Mode and options are ignored."""
        return GeneratedRules(
            file_rules=tuple(self.file_rules),
            env_rules=tuple(self.env_rules),
            cli_rules=tuple(self.cli_rules),
        )


class ModalRuleDefinition(RuleDefinition):
    """
    A rule for a developer tool that can be blocked or explained.

    Attributes:
        default_mode: Mode used when the configuration does not pick one
        strict_message: Block reason for strict mode
        default_context: Guidance attached to allowed commands in passive mode
        passive_patterns: Tool invocations allowed in passive mode
        strict_patterns: Tool invocations denied in strict mode
            (the passive patterns when empty)
        config_file_patterns: Tool configuration files hidden in strict mode
        extra_strict_rules: Additional CLI rules appended in strict mode
    """

    supports_mode: ClassVar[bool] = True

    default_mode: RuleMode = Field(default=RuleMode.PASSIVE)
    strict_message: str = Field(..., description="Default strict mode message")
    default_context: str = Field(..., description="Default passive mode context")
    passive_patterns: list[Pattern] = Field(..., min_length=1)
    strict_patterns: list[Pattern] = Field(default_factory=list)
    config_file_patterns: list[Pattern] = Field(default_factory=list)
    extra_strict_rules: list[CliRule] = Field(default_factory=list)

    @field_validator(
        "passive_patterns",
        "strict_patterns",
        "config_file_patterns",
        mode="before",
    )
    @classmethod
    def coerce_patterns(cls, v: Any) -> list[Pattern]:
        """Accept the same pattern spellings as rules do."""
        return [Pattern.coerce(p) for p in v]

    def generate(
        self,
        mode: RuleMode | None = None,
        options: ModalRuleOptions | None = None,
    ) -> GeneratedRules:
        """
        Generate the concrete rules for a mode.

        Args:
            mode: Explicit mode; falls back to default_mode
            options: Message/context overrides

        Returns:
            Deny rules in strict mode, allow-with-context rules in passive mode
        """
        mode = RuleMode(mode) if mode is not None else self.default_mode
        options = options or ModalRuleOptions()

        if mode == RuleMode.STRICT:
            message = options.message or self.strict_message
            cli_rules = [
                CliRule(pattern=p, action=RuleAction.DENY, reason=message)
                for p in (self.strict_patterns or self.passive_patterns)
            ]
            cli_rules.extend(self.extra_strict_rules)
            file_rules = [
                FileRule(pattern=p, action=RuleAction.DENY, reason=message)
                for p in self.config_file_patterns
            ]
            return GeneratedRules(file_rules=tuple(file_rules), cli_rules=tuple(cli_rules))

        context = options.context or self.default_context
        return GeneratedRules(
            cli_rules=tuple(
                CliRule(pattern=p, action=RuleAction.ALLOW, reason=context)
                for p in self.passive_patterns
            ),
        )
