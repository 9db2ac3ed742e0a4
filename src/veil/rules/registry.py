"""
Rule registry for Veil.

The registry maps rule ids ("linux/no-delete-root", "tooling/git") to rule
definitions, and turns the `rules:` section of a configuration into
concrete file/env/cli rules.

Design:
    - Registries are plain objects, injected where they are needed
    - One lazily built default registry holds the built-in rules
    - Registration is idempotent: the first definition for an id wins
    - Unknown rule ids in a configuration are logged and skipped

Usage:
    from veil.rules.registry import build_config_from_rules, get_default_registry

    registry = get_default_registry()
    config = build_config_from_rules({"tooling/git": "warn"}, registry=registry)
"""

import logging
import sys
import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from veil.errors import RuleNotFoundError
from veil.rules.base import ModalRuleDefinition, ModalRuleOptions, RuleDefinition
from veil.rules.modal import MODAL_RULES, resolve_modal_rule
from veil.rules.platform import PLATFORM_RULES
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    Platform,
    RuleCategory,
    RuleSetting,
    RuleSeverity,
    VeilConfig,
)

logger = logging.getLogger(__name__)


class RuleRegistry:
    """
    Registry for looking up rule definitions by id.

    Attributes:
        _rules: Internal mapping of rule ids to definitions, in
            registration order
    """

    def __init__(self, rules: Iterable[RuleDefinition] = ()) -> None:
        """Initialize a registry, optionally pre-populated."""
        self._rules: dict[str, RuleDefinition] = {}
        self.register_many(rules)

    @classmethod
    def with_builtin_rules(cls) -> "RuleRegistry":
        """Create a registry holding every built-in platform and modal rule."""
        return cls([*PLATFORM_RULES, *MODAL_RULES])

    def register(self, rule: RuleDefinition) -> bool:
        """
        Register a rule definition.

        Registering an id that is already present is a no-op, so the first
        definition for an id always wins.

        Args:
            rule: The definition to register

        Returns:
            True if the rule was added, False if the id was already taken

        Raises:
            ValueError: If rule is None or has an empty id
        """
        if rule is None:
            msg = "Cannot register None as a rule"
            raise ValueError(msg)
        if not rule.id:
            msg = "Rule must have a non-empty id"
            raise ValueError(msg)

        if rule.id in self._rules:
            return False
        self._rules[rule.id] = rule
        return True

    def register_many(self, rules: Iterable[RuleDefinition]) -> int:
        """Register several definitions, returning how many were added."""
        return sum(1 for rule in rules if self.register(rule))

    def get(self, rule_id: str) -> RuleDefinition:
        """
        Look up a rule by id.

        Raises:
            RuleNotFoundError: If no rule with that id is registered
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id=rule_id)
        return rule

    def get_optional(self, rule_id: str) -> RuleDefinition | None:
        """Look up a rule by id, returning None if not found."""
        return self._rules.get(rule_id)

    def has(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def all_rules(self) -> list[RuleDefinition]:
        """All definitions in registration order."""
        return list(self._rules.values())

    def list_ids(self) -> list[str]:
        """All registered ids in sorted order."""
        return sorted(self._rules)

    def by_category(self, category: RuleCategory | str) -> list[RuleDefinition]:
        """Definitions in a category."""
        category = RuleCategory(category)
        return [r for r in self._rules.values() if r.category == category]

    def by_platform(self, platform: Platform | str) -> list[RuleDefinition]:
        """Definitions applicable on a platform, including cross-platform ones."""
        platform = Platform(platform)
        return [r for r in self._rules.values() if r.applies_to(platform)]

    def clear(self) -> None:
        """Remove all rules. Intended for test isolation only."""
        self._rules.clear()

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[RuleDefinition]:
        return iter(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __repr__(self) -> str:
        return f"<RuleRegistry: {len(self)} rules>"


# =============================================================================
# Default Registry
# =============================================================================

_default_registry: RuleRegistry | None = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> RuleRegistry:
    """
    Return the process-wide registry of built-in rules.

    Built on first use, exactly once, even under concurrent first calls.
    """
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = RuleRegistry.with_builtin_rules()
    return _default_registry


def detect_platform() -> Platform:
    """Map the running interpreter's platform onto a rule platform."""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.DARWIN
    return Platform.LINUX


# =============================================================================
# Configuration Assembly
# =============================================================================


def build_config_from_rules(
    rules_config: Mapping[str, Any],
    platform: Platform | str | None = None,
    registry: RuleRegistry | None = None,
) -> VeilConfig:
    """
    Expand named rule settings into concrete rules.

    Rules are expanded in the order they appear. Disabled rules, rules for
    other platforms and unknown ids are skipped; unknown ids are logged.
    Modal rules use the configured mode, falling back to their default.

    Args:
        rules_config: rule id -> setting ("warn", ["error", {...}], RuleSetting)
        platform: Target platform (detected when omitted)
        registry: Registry to resolve ids against (default registry when omitted)

    Returns:
        VeilConfig holding only explicit rule lists
    """
    target = Platform(platform) if platform is not None else detect_platform()
    registry = registry if registry is not None else get_default_registry()

    file_rules: list[FileRule] = []
    env_rules: list[EnvRule] = []
    cli_rules: list[CliRule] = []

    for rule_id, raw_setting in rules_config.items():
        setting = RuleSetting.model_validate(raw_setting)
        if not setting.enabled:
            continue

        rule = registry.get_optional(rule_id)
        if rule is None:
            logger.warning("Unknown rule: %s", rule_id)
            continue

        if not rule.applies_to(target):
            logger.debug("Skipping %s: not applicable on %s", rule_id, target.value)
            continue

        if isinstance(rule, ModalRuleDefinition):
            generated = resolve_modal_rule(
                rule,
                setting.mode,
                ModalRuleOptions(message=setting.message, context=setting.context),
            )
        else:
            generated = rule.generate()

        file_rules.extend(generated.file_rules)
        env_rules.extend(generated.env_rules)
        cli_rules.extend(generated.cli_rules)

    return VeilConfig(file_rules=file_rules, env_rules=env_rules, cli_rules=cli_rules)


def resolve_config(
    config: VeilConfig,
    registry: RuleRegistry | None = None,
    platform: Platform | str | None = None,
) -> VeilConfig:
    """
    Fold a configuration's named rules into its rule lists.

    Explicit rules keep priority over rules contributed by named rules.
    """
    if not config.rules:
        return config

    generated = build_config_from_rules(config.rules, platform=platform, registry=registry)
    return VeilConfig(
        file_rules=[*config.file_rules, *generated.file_rules],
        env_rules=[*config.env_rules, *generated.env_rules],
        cli_rules=[*config.cli_rules, *generated.cli_rules],
        bypass_protection=config.bypass_protection,
    )


def recommended_rules(
    platform: Platform | str | None = None,
    registry: RuleRegistry | None = None,
) -> dict[str, RuleSetting]:
    """Every rule for a platform at its default severity, skipping "off" rules."""
    target = Platform(platform) if platform is not None else detect_platform()
    registry = registry if registry is not None else get_default_registry()
    return {
        rule.id: RuleSetting(severity=rule.default_severity)
        for rule in registry.by_platform(target)
        if rule.default_severity != RuleSeverity.OFF
    }


def extend_rules(
    base: Mapping[str, Any],
    overrides: Mapping[str, Any],
) -> dict[str, RuleSetting]:
    """Combine rule settings, letting overrides replace base entries."""
    merged = {**base, **overrides}
    return {rule_id: RuleSetting.model_validate(s) for rule_id, s in merged.items()}
