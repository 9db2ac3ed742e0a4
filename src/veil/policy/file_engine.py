"""
File policy engine.

Decides what an agent sees when it reads a file or lists a directory.

Action handling:
    - allow:   visible unchanged
    - deny:    blocked ("file_hidden_by_policy" or the rule's reason)
    - mask:    blocked, details carry a placeholder the caller may show
    - rewrite: the replacement becomes the visible content; blocked when
               no replacement is configured. Directories get an empty listing.

Injected file content or directory listings short-circuit the rules.
"""

from collections.abc import Iterable

from veil.policy.matching import evaluate
from veil.schema import (
    DEFAULT_FILE_REPLACEMENT,
    BlockDetails,
    BlockReason,
    Injectors,
    PolicyResult,
    RuleAction,
    RuleKind,
    RuleList,
)


class FileEngine:
    """
    Evaluates file and directory paths against file rules.

    Usage:
        engine = FileEngine(RuleList.of(RuleKind.FILE, config.file_rules))
        result = engine.check_file("packages/app/node_modules/x")
        if result.blocked:
            print(result.reason, result.details.policy)

    Attributes:
        rules: The file rules in priority order
        injectors: Optional content/listing overrides
    """

    def __init__(self, rules: RuleList, injectors: Injectors | None = None) -> None:
        if rules.kind != RuleKind.FILE:
            msg = f"FileEngine needs fileRules, got {rules.name}"
            raise ValueError(msg)
        self.rules = rules
        self.injectors = injectors or Injectors()

    def check_file(self, path: str) -> PolicyResult:
        """
        Check whether a file may be read.

        Args:
            path: The file path as requested by the agent

        Returns:
            Allowed result (value True, or the injected/rewritten content),
            or a blocked result with details
        """
        if self.injectors.files is not None:
            injected = self.injectors.files(path)
            if injected is not None:
                return PolicyResult.allow(injected, kind=RuleKind.FILE)
        return self._check(path, BlockReason.FILE_HIDDEN, directory=False)

    def check_directory(self, path: str) -> PolicyResult:
        """
        Check whether a directory may be listed.

        Rewrite rules produce an empty listing instead of text content.
        """
        if self.injectors.directories is not None:
            injected = self.injectors.directories(path)
            if injected is not None:
                return PolicyResult.allow(list(injected), kind=RuleKind.FILE)
        return self._check(path, BlockReason.DIRECTORY_HIDDEN, directory=True)

    def is_visible(self, path: str) -> bool:
        """Whether the rules let the agent see a path."""
        return self._check(path, BlockReason.FILE_HIDDEN, directory=False).ok

    def filter_paths(self, paths: Iterable[str]) -> list[str]:
        """Keep only the paths the agent may see, preserving order."""
        return [path for path in paths if self.is_visible(path)]

    # =========================================================================
    # Rule Evaluation
    # =========================================================================

    def _check(self, path: str, default_reason: str, directory: bool) -> PolicyResult:
        result = evaluate(path, self.rules)
        if result is None:
            return PolicyResult.allow(True, kind=RuleKind.FILE)

        rule = result.rule
        ref = result.policy_ref

        if result.action == RuleAction.ALLOW:
            return PolicyResult.allow(
                True,
                context=rule.reason,
                policy=ref,
                action=result.action,
                kind=RuleKind.FILE,
            )

        if result.action == RuleAction.DENY:
            return self._blocked(path, rule.reason or default_reason, ref, result.action)

        if result.action == RuleAction.MASK:
            return self._blocked(
                path,
                default_reason,
                ref,
                result.action,
                replacement=rule.replacement or DEFAULT_FILE_REPLACEMENT,
            )

        # Rewrite
        if directory:
            return PolicyResult.allow([], policy=ref, action=result.action, kind=RuleKind.FILE)
        if rule.replacement is not None:
            return PolicyResult.allow(
                rule.replacement,
                policy=ref,
                action=result.action,
                kind=RuleKind.FILE,
            )
        return self._blocked(path, default_reason, ref, result.action)

    @staticmethod
    def _blocked(
        path: str,
        reason: str,
        ref: str,
        action: RuleAction,
        replacement: str | None = None,
    ) -> PolicyResult:
        details = BlockDetails(
            target=path,
            policy=ref,
            action=action,
            replacement=replacement,
        )
        return PolicyResult.block(reason, details, kind=RuleKind.FILE)
