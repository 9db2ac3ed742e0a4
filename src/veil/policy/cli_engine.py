"""
CLI policy engine.

Checks shell commands before an agent runs them. With bypass protection on,
every normalized variant of the command is checked, so `bash -c "rm -rf /"`
hits the same rule as `rm -rf /`.

Action handling:
    - allow:   command passes unchanged; a rule reason becomes context
    - deny:    blocked with the rule's reason and safe alternatives
    - mask:    same as deny (a command has no partial form)
    - rewrite: command replaced; blocked when no replacement is configured

Security Note:
    When the match came from a normalized variant, the block reason says so,
    which tells the agent why a harmless-looking command was refused.
"""

from veil.policy.matching import EvaluationResult, evaluate
from veil.policy.normalize import (
    describe_normalization,
    normalize_command,
    resolve_bypass_options,
)
from veil.schema import (
    BlockDetails,
    BlockReason,
    CliResult,
    NormalizeOptions,
    RuleAction,
    RuleKind,
    RuleList,
)

BYPASS_NOTE = "\n\nBypass attempt detected: {note}"


class CliEngine:
    """
    Evaluates shell commands against CLI rules.

    Usage:
        engine = CliEngine(RuleList.of(RuleKind.CLI, config.cli_rules))
        result = engine.check_command('bash -c "git push --force"')
        if result.blocked:
            print(result.reason, result.safe_alternatives)
        else:
            run(result.command)

    Attributes:
        rules: The CLI rules in priority order
        normalize_options: Normalizer options, or None when bypass
            protection is disabled
    """

    def __init__(
        self,
        rules: RuleList,
        bypass_protection: bool | NormalizeOptions | None = True,
    ) -> None:
        if rules.kind != RuleKind.CLI:
            msg = f"CliEngine needs cliRules, got {rules.name}"
            raise ValueError(msg)
        self.rules = rules
        self.normalize_options = resolve_bypass_options(bypass_protection)

    def variants(self, command: str) -> list[str]:
        """The command forms checked against the rules, in order."""
        if self.normalize_options is None:
            return [command.strip()]
        return normalize_command(command, self.normalize_options)

    def check_command(self, command: str) -> CliResult:
        """
        Check a command before it runs.

        Args:
            command: The raw command string

        Returns:
            CliResult with the command to run, or a blocked result
        """
        raw = command.strip()
        for variant in self.variants(command):
            result = evaluate(variant, self.rules)
            if result is None:
                continue
            note = describe_normalization(command, variant) if variant != raw else None
            return self._decide(command, result, note)

        return CliResult.allow(command=command, kind=RuleKind.CLI)

    def is_allowed(self, command: str) -> bool:
        return self.check_command(command).ok

    def transform(self, command: str) -> str | None:
        """The command to run after rewrites, or None if blocked."""
        result = self.check_command(command)
        if not result.ok:
            return None
        return result.command

    def _decide(
        self,
        command: str,
        result: EvaluationResult,
        note: str | None,
    ) -> CliResult:
        rule = result.rule
        ref = result.policy_ref

        if result.action == RuleAction.ALLOW:
            return CliResult.allow(
                command=command,
                context=rule.reason,
                policy=ref,
                action=result.action,
                kind=RuleKind.CLI,
                normalization=note,
            )

        if result.action == RuleAction.REWRITE and rule.replacement is not None:
            return CliResult.allow(
                command=rule.replacement,
                policy=ref,
                action=result.action,
                kind=RuleKind.CLI,
                normalization=note,
            )

        # Deny, mask, and rewrite without a replacement all block
        reason = rule.reason or BlockReason.COMMAND_DENIED
        if note:
            reason += BYPASS_NOTE.format(note=note)

        details = BlockDetails(
            target=command,
            policy=ref,
            action=result.action,
            safe_alternatives=rule.safe_alternatives,
        )
        return CliResult.block(
            reason,
            details,
            kind=RuleKind.CLI,
            command=command,
            normalization=note,
        )
