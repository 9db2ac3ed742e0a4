"""
Veil - Policy resolution for AI agents.

Veil decides, for every file path, environment variable and shell command an
agent touches, whether the agent may access it and what it actually sees:
- First-match-wins rules that allow, deny, mask or rewrite
- Bypass protection for wrapped commands (bash -c, eval, /usr/bin/..., npx)
- Named built-in rules per platform, and strict/passive rules for dev tools
- An in-memory audit log of blocked accesses
- Plugin hooks around every check (logging and metrics built in)

Example usage:
    $ veil check 'bash -c "rm -rf /"' --type cli
    $ veil explain .env --type file
    $ veil list-rules --category credentials
"""

__version__ = "0.1.0"
__author__ = "Veil Contributors"

from veil.engine import Explanation, GuardSession, Veil, VeilContext
from veil.plugins import HookContext, LoggingPlugin, MetricsPlugin, PluginManager, VeilPlugin
from veil.schema import (
    CliResult,
    CliRule,
    EnvRule,
    FileRule,
    Injectors,
    Pattern,
    PolicyResult,
    RuleAction,
    RuleList,
    VeilConfig,
    load_config,
    load_config_from_string,
    merge_configs,
)

__all__ = [
    "__version__",
    "__author__",
    "Veil",
    "VeilContext",
    "GuardSession",
    "Explanation",
    "HookContext",
    "LoggingPlugin",
    "MetricsPlugin",
    "PluginManager",
    "VeilPlugin",
    "CliResult",
    "CliRule",
    "EnvRule",
    "FileRule",
    "Injectors",
    "Pattern",
    "PolicyResult",
    "RuleAction",
    "RuleList",
    "VeilConfig",
    "load_config",
    "load_config_from_string",
    "merge_configs",
]
