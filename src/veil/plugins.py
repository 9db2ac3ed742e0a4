"""
Plugin hooks for Veil.

Plugins observe and adjust decisions without touching the engines:
- VeilPlugin: Base class with no-op hooks that plugins override
- HookContext: What is being checked and by which operation
- PluginManager: Ordered plugin list that runs the hooks

Hook semantics:
    - before_*: Return a result to short-circuit the check, or None to let
      the engine decide. The first plugin that returns a result wins.
    - after_*: Receive the result and return the one to use. Every plugin
      runs, in registration order, each seeing the previous one's output.

Built-in plugins:
    - LoggingPlugin: Logs every decision through the logging module
    - MetricsPlugin: Counts checks per kind and blocked decisions
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, replace

from veil.schema import CliResult, PolicyResult, RuleKind, VeilConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HookContext:
    """
    The check a hook is running for.

    Attributes:
        kind: Which engine is asked
        target: File path, variable name or command
        operation: The Veil method that triggered the hook (e.g. "check_file")
    """

    kind: RuleKind
    target: str
    operation: str


class VeilPlugin(ABC):
    """
    Base class for Veil plugins.

    Subclasses must provide a unique name and override the hooks they need.

    Example:
        class DenyDeploys(VeilPlugin):
            @property
            def name(self) -> str:
                return "deny-deploys"

            def before_cli_check(self, context: HookContext) -> CliResult | None:
                if "deploy" in context.target:
                    return CliResult.block(...)
                return None
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin name."""
        ...

    def install(self, config: VeilConfig) -> None:
        """Called once with the resolved configuration when the plugin is added."""

    def before_file_check(self, context: HookContext) -> PolicyResult | None:
        return None

    def after_file_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        return result

    def before_env_check(self, context: HookContext) -> PolicyResult | None:
        return None

    def after_env_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        return result

    def before_cli_check(self, context: HookContext) -> CliResult | None:
        return None

    def after_cli_check(self, context: HookContext, result: CliResult) -> CliResult:
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PluginManager:
    """
    Ordered set of plugins, unique by name.

    Usage:
        manager = PluginManager()
        manager.use(LoggingPlugin()).use(MetricsPlugin())
        result = manager.run_before(context) or engine_check()
        result = manager.run_after(context, result)
    """

    def __init__(self) -> None:
        self._plugins: list[VeilPlugin] = []

    def use(self, plugin: VeilPlugin) -> "PluginManager":
        """
        Register a plugin. A second plugin with the same name is ignored.

        Returns:
            The manager, for chaining
        """
        if self.has(plugin.name):
            logger.warning("Plugin %r is already registered", plugin.name)
            return self
        self._plugins.append(plugin)
        return self

    def remove(self, name: str) -> bool:
        """Remove a plugin by name. Returns False if it was not registered."""
        for index, plugin in enumerate(self._plugins):
            if plugin.name == name:
                del self._plugins[index]
                return True
        return False

    def has(self, name: str) -> bool:
        return any(plugin.name == name for plugin in self._plugins)

    def plugins(self) -> list[VeilPlugin]:
        return list(self._plugins)

    def install_all(self, config: VeilConfig) -> None:
        for plugin in self._plugins:
            plugin.install(config)

    def run_before(self, context: HookContext) -> PolicyResult | None:
        """Run the before hooks for the context's kind until one returns a result."""
        for plugin in self._plugins:
            if context.kind == RuleKind.CLI:
                result: PolicyResult | None = plugin.before_cli_check(context)
            elif context.kind == RuleKind.ENV:
                result = plugin.before_env_check(context)
            else:
                result = plugin.before_file_check(context)
            if result is not None:
                logger.debug("Plugin %r decided %s %r", plugin.name, context.operation, context.target)
                return result
        return None

    def run_after(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        """Pass the result through every after hook for the context's kind."""
        for plugin in self._plugins:
            if context.kind == RuleKind.CLI and isinstance(result, CliResult):
                result = plugin.after_cli_check(context, result)
            elif context.kind == RuleKind.ENV:
                result = plugin.after_env_check(context, result)
            elif context.kind == RuleKind.FILE:
                result = plugin.after_file_check(context, result)
        return result

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[VeilPlugin]:
        return iter(self._plugins)

    def __contains__(self, name: str) -> bool:
        return self.has(name)


# =============================================================================
# Built-in Plugins
# =============================================================================


class LoggingPlugin(VeilPlugin):
    """
    Log every decision.

    Messages look like `[veil:cli] check_command 'git push' -> blocked` and
    go to the given logger (the veil.plugins logger by default) at `level`.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.log = log or logger
        self.level = level

    @property
    def name(self) -> str:
        return "logging"

    def _emit(self, context: HookContext, result: PolicyResult) -> None:
        self.log.log(
            self.level,
            "[veil:%s] %s %r -> %s",
            context.kind.value,
            context.operation,
            context.target,
            "allowed" if result.ok else "blocked",
        )

    def after_file_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        self._emit(context, result)
        return result

    def after_env_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        self._emit(context, result)
        return result

    def after_cli_check(self, context: HookContext, result: CliResult) -> CliResult:
        self._emit(context, result)
        return result


@dataclass
class VeilMetrics:
    """Check counters kept by MetricsPlugin."""

    files: int = 0
    env: int = 0
    cli: int = 0
    blocked: int = 0


class MetricsPlugin(VeilPlugin):
    """Count checks per kind and how many were blocked."""

    def __init__(self) -> None:
        self._metrics = VeilMetrics()

    @property
    def name(self) -> str:
        return "metrics"

    def get_metrics(self) -> VeilMetrics:
        """A snapshot of the counters."""
        return replace(self._metrics)

    def reset(self) -> None:
        self._metrics = VeilMetrics()

    def _count(self, result: PolicyResult) -> None:
        if result.blocked:
            self._metrics.blocked += 1

    def after_file_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        self._metrics.files += 1
        self._count(result)
        return result

    def after_env_check(self, context: HookContext, result: PolicyResult) -> PolicyResult:
        self._metrics.env += 1
        self._count(result)
        return result

    def after_cli_check(self, context: HookContext, result: CliResult) -> CliResult:
        self._metrics.cli += 1
        self._count(result)
        return result
