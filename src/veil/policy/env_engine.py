"""
Environment variable policy engine.

Env rules share the file engine's action semantics with two differences:
mask transforms the real value instead of blocking, and allow rules with a
reason pass that reason along as advisory context.

The engine never reads os.environ itself. Callers pass the mapping to
evaluate, which keeps checks deterministic and testable.
"""

from collections.abc import Iterable, Mapping

from veil.policy.matching import evaluate, mask_value
from veil.schema import (
    BlockDetails,
    BlockReason,
    Injectors,
    PolicyResult,
    RuleAction,
    RuleKind,
    RuleList,
)


class EnvEngine:
    """
    Evaluates environment variable names against env rules.

    Attributes:
        rules: The env rules in priority order
        environ: The variables the agent could ask for
        injectors: Optional value overrides
    """

    def __init__(
        self,
        rules: RuleList,
        environ: Mapping[str, str] | None = None,
        injectors: Injectors | None = None,
    ) -> None:
        if rules.kind != RuleKind.ENV:
            msg = f"EnvEngine needs envRules, got {rules.name}"
            raise ValueError(msg)
        self.rules = rules
        self.environ: Mapping[str, str] = environ if environ is not None else {}
        self.injectors = injectors or Injectors()

    def get_env(self, key: str) -> PolicyResult:
        """
        Read a variable with rules applied.

        Returns:
            Allowed result whose value is the real, masked or rewritten
            value (None when unset), or a blocked result
        """
        if self.injectors.env is not None:
            injected = self.injectors.env(key)
            if injected is not None:
                return PolicyResult.allow(injected, kind=RuleKind.ENV)
        return self._check(key)

    def get_visible_env(self) -> dict[str, str]:
        """Every variable the agent may see, with masks and rewrites applied."""
        visible: dict[str, str] = {}
        for key in self.environ:
            result = self._check(key)
            if result.ok and result.value is not None:
                visible[key] = result.value
        return visible

    def is_visible(self, key: str) -> bool:
        return self._check(key).ok

    def filter_keys(self, keys: Iterable[str]) -> list[str]:
        """Keep only the variable names the agent may read."""
        return [key for key in keys if self.is_visible(key)]

    def _check(self, key: str) -> PolicyResult:
        real_value = self.environ.get(key)
        result = evaluate(key, self.rules)
        if result is None:
            return PolicyResult.allow(real_value, kind=RuleKind.ENV)

        rule = result.rule
        allowed = {"policy": result.policy_ref, "action": result.action, "kind": RuleKind.ENV}

        if result.action == RuleAction.ALLOW:
            return PolicyResult.allow(real_value, context=rule.reason, **allowed)

        if result.action == RuleAction.MASK:
            if real_value is None:
                return PolicyResult.allow(None, **allowed)
            return PolicyResult.allow(mask_value(real_value, rule.replacement), **allowed)

        if result.action == RuleAction.REWRITE and rule.replacement is not None:
            return PolicyResult.allow(rule.replacement, **allowed)

        # Deny, or rewrite with nothing to rewrite to
        reason = BlockReason.ENV_DENIED
        if result.action == RuleAction.DENY and rule.reason:
            reason = rule.reason
        details = BlockDetails(target=key, policy=result.policy_ref, action=result.action)
        return PolicyResult.block(reason, details, kind=RuleKind.ENV)
