"""
Named rules for Veil.

Built-in rules can be switched on by id from a configuration instead of
writing patterns by hand:

    - Platform rules: destructive commands and credential stores on
      Windows, macOS and Linux
    - Cross-platform rules: cloud credentials in the environment, secret
      files, noisy directories, credential leaks on the command line
    - Modal rules: developer tools (git, docker, terraform, ...) that are
      either blocked (strict) or allowed with guidance (passive)
"""

from veil.rules.base import (
    GeneratedRules,
    ModalRuleDefinition,
    ModalRuleOptions,
    RuleDefinition,
)
from veil.rules.modal import (
    MODAL_RULES,
    default_context,
    default_strict_message,
    resolve_modal_rule,
)
from veil.rules.registry import (
    RuleRegistry,
    build_config_from_rules,
    detect_platform,
    extend_rules,
    get_default_registry,
    recommended_rules,
    resolve_config,
)

__all__ = [
    "GeneratedRules",
    "ModalRuleDefinition",
    "ModalRuleOptions",
    "RuleDefinition",
    "MODAL_RULES",
    "default_context",
    "default_strict_message",
    "resolve_modal_rule",
    "RuleRegistry",
    "build_config_from_rules",
    "detect_platform",
    "extend_rules",
    "get_default_registry",
    "recommended_rules",
    "resolve_config",
]
