"""
Veil facade.

Veil bundles the three policy engines behind one object built from a
VeilConfig, and keeps an in-memory audit log of every blocked access.

Flow:
    1. Named rules in the config are expanded through the rule registry
       (explicit rules keep priority)
    2. File, env and CLI engines are built from the resolved rule lists
    3. Each check runs the plugin before hooks, then its engine unless a
       hook decided, then the after hooks
    4. Blocked results are recorded as InterceptRecords and logged at
       debug level

Design Principles:
    - Decisions are data: checks return results, they never raise
    - The environment is injected: Veil never reads os.environ itself
    - Scoping never mutates: scope() returns a new Veil
"""

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TypeVar, cast

from veil.policy import CliEngine, EnvEngine, EvaluationResult, FileEngine, find_all_matches
from veil.plugins import HookContext, PluginManager, VeilPlugin
from veil.rules.registry import RuleRegistry, resolve_config
from veil.schema import (
    CliResult,
    CliRule,
    EnvRule,
    FileRule,
    Injectors,
    InterceptRecord,
    Platform,
    PolicyResult,
    RuleAction,
    RuleKind,
    VeilConfig,
    merge_configs,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=PolicyResult)


@dataclass
class GuardSession:
    """
    What happened inside a Veil.guard() block.

    Attributes:
        intercepts: Accesses blocked while the block ran
        duration_ms: Wall time of the block, set on exit
        success: False if the block raised
        error: The exception raised by the block, if any
    """

    intercepts: list[InterceptRecord] = field(default_factory=list)
    duration_ms: float = 0.0
    success: bool = True
    error: BaseException | None = None


@dataclass
class VeilContext:
    """Snapshot of what the agent can currently see."""

    visible_env: dict[str, str]
    intercepted_calls: list[InterceptRecord]


@dataclass
class Explanation:
    """
    Why a target got its decision.

    Attributes:
        kind: Which engine decided
        target: The raw target
        result: The decision itself
        checked: The forms of the target that were checked, in order
        matches: Every (checked form, matching rule) pair, in priority order.
            The first entry is the rule that decided.
    """

    kind: RuleKind
    target: str
    result: PolicyResult
    checked: list[str]
    matches: list[tuple[str, EvaluationResult]]


class Veil:
    """
    Policy front door for an agent runtime.

    Usage:
        veil = Veil(load_config("veil.yaml"), environ=os.environ)
        result = veil.check_command('bash -c "rm -rf /"')
        if result.blocked:
            print(result.reason)

    Attributes:
        config: The resolved configuration (named rules already expanded)
        file_engine / env_engine / cli_engine: The underlying engines
    """

    def __init__(
        self,
        config: VeilConfig | None = None,
        *,
        injectors: Injectors | None = None,
        environ: Mapping[str, str] | None = None,
        registry: RuleRegistry | None = None,
        platform: Platform | str | None = None,
        plugins: Iterable[VeilPlugin] = (),
    ) -> None:
        """
        Build the engines for a configuration.

        Args:
            config: Rules and options (empty config allows everything)
            injectors: Overrides consulted before any rule
            environ: Environment variables visible to env checks
            registry: Registry for named rules (default registry when omitted)
            platform: Platform for named rules (detected when omitted)
            plugins: Hooks run around every check, in order
        """
        self.config = resolve_config(config or VeilConfig(), registry=registry, platform=platform)
        self.injectors = injectors
        self.environ: Mapping[str, str] = environ if environ is not None else {}
        self.registry = registry
        self.platform = platform

        self.file_engine = FileEngine(self.config.rule_list(RuleKind.FILE), injectors)
        self.env_engine = EnvEngine(self.config.rule_list(RuleKind.ENV), self.environ, injectors)
        self.cli_engine = CliEngine(
            self.config.rule_list(RuleKind.CLI),
            bypass_protection=self.config.bypass_protection,
        )

        self._intercepts: list[InterceptRecord] = []

        self.plugins = PluginManager()
        for plugin in plugins:
            self.use(plugin)

    # =========================================================================
    # Plugins
    # =========================================================================

    def use(self, plugin: VeilPlugin) -> "Veil":
        """Add a plugin and install it with the resolved configuration."""
        installed = plugin.name in self.plugins
        self.plugins.use(plugin)
        if not installed:
            plugin.install(self.config)
        return self

    def remove_plugin(self, name: str) -> bool:
        return self.plugins.remove(name)

    # =========================================================================
    # Checks
    # =========================================================================

    def check_file(self, path: str) -> PolicyResult:
        return self._run(
            HookContext(RuleKind.FILE, path, "check_file"),
            lambda: self.file_engine.check_file(path),
        )

    def check_directory(self, path: str) -> PolicyResult:
        return self._run(
            HookContext(RuleKind.FILE, path, "check_directory"),
            lambda: self.file_engine.check_directory(path),
        )

    def filter_paths(self, paths: Iterable[str]) -> list[str]:
        return self.file_engine.filter_paths(paths)

    def get_env(self, key: str) -> PolicyResult:
        return self._run(
            HookContext(RuleKind.ENV, key, "get_env"),
            lambda: self.env_engine.get_env(key),
        )

    def get_visible_env(self) -> dict[str, str]:
        return self.env_engine.get_visible_env()

    def check_command(self, command: str) -> CliResult:
        return self._run(
            HookContext(RuleKind.CLI, command, "check_command"),
            lambda: self.cli_engine.check_command(command),
        )

    def is_allowed(self, command: str) -> bool:
        return self.check_command(command).ok

    def transform(self, command: str) -> str | None:
        """The command to run after rewrites, or None if blocked."""
        result = self.check_command(command)
        return result.command if result.ok else None

    def explain(self, target: str, kind: RuleKind | str) -> Explanation:
        """
        Explain the decision for a target without recording an intercept.

        Args:
            target: File path, variable name or command
            kind: Which engine to ask

        Returns:
            Explanation with the decision and every matching rule
        """
        kind = RuleKind(kind)
        if kind == RuleKind.CLI:
            checked = self.cli_engine.variants(target)
            rules = self.cli_engine.rules
            result: PolicyResult = self.cli_engine.check_command(target)
        elif kind == RuleKind.ENV:
            checked = [target]
            rules = self.env_engine.rules
            result = self.env_engine.get_env(target)
        else:
            checked = [target]
            rules = self.file_engine.rules
            result = self.file_engine.check_file(target)

        matches = [
            (form, match)
            for form in checked
            for match in find_all_matches(form, rules)
        ]
        return Explanation(
            kind=kind,
            target=target,
            result=result,
            checked=checked,
            matches=matches,
        )

    # =========================================================================
    # Scoping
    # =========================================================================

    def scope(
        self,
        file_rules: Iterable[FileRule] = (),
        env_rules: Iterable[EnvRule] = (),
        cli_rules: Iterable[CliRule] = (),
    ) -> "Veil":
        """
        Create a Veil with extra rules checked before the current ones.

        The new instance shares injectors and environment but starts with
        an empty intercept log.
        """
        scoped = VeilConfig(
            file_rules=list(file_rules),
            env_rules=list(env_rules),
            cli_rules=list(cli_rules),
            bypass_protection=self.config.bypass_protection,
        )
        return Veil(
            merge_configs(scoped, self.config),
            injectors=self.injectors,
            environ=self.environ,
            registry=self.registry,
            platform=self.platform,
            plugins=self.plugins.plugins(),
        )

    @contextmanager
    def guard(self) -> Iterator[GuardSession]:
        """
        Collect the accesses blocked while a block of code runs.

        Usage:
            with veil.guard() as session:
                agent.step()
            print(len(session.intercepts))

        Exceptions from the block propagate after the session is filled in.
        """
        session = GuardSession()
        start = time.perf_counter()
        before = len(self._intercepts)
        try:
            yield session
        except BaseException as e:
            session.success = False
            session.error = e
            raise
        finally:
            session.duration_ms = (time.perf_counter() - start) * 1000
            session.intercepts = self._intercepts[before:]

    # =========================================================================
    # Audit
    # =========================================================================

    def intercepted_calls(self) -> list[InterceptRecord]:
        """A copy of the intercept log, oldest first."""
        return list(self._intercepts)

    def clear_intercepted_calls(self) -> None:
        self._intercepts.clear()

    def get_context(self) -> VeilContext:
        return VeilContext(
            visible_env=self.get_visible_env(),
            intercepted_calls=self.intercepted_calls(),
        )

    def _run(self, context: HookContext, check: Callable[[], ResultT]) -> ResultT:
        """Run a check between the plugin hooks and record it if blocked."""
        result = self.plugins.run_before(context)
        if result is None:
            result = check()
        result = self.plugins.run_after(context, result)
        self._record(context.target, result, context.kind)
        return cast(ResultT, result)

    def _record(
        self, target: str, result: PolicyResult, kind: RuleKind = RuleKind.FILE
    ) -> PolicyResult:
        if result.blocked:
            record = InterceptRecord(
                kind=result.kind or kind,
                target=target,
                action=result.action or RuleAction.DENY,
                policy=result.policy,
            )
            self._intercepts.append(record)
            logger.debug(
                "Intercepted %s %r: %s (%s)",
                record.kind.value,
                target,
                record.action.value,
                record.policy,
            )
        return result
