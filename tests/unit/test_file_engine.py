"""
Unit tests for the file policy engine.

Tests cover:
- Default allow and first-match decisions
- deny, mask and rewrite actions for files and directories
- Injected content and listings
- Visibility filtering
"""

import pytest

from veil.policy import FileEngine
from veil.schema import (
    BlockReason,
    FileRule,
    Injectors,
    RuleAction,
    RuleKind,
    RuleList,
)


def make_engine(*rules: FileRule, injectors: Injectors | None = None) -> FileEngine:
    return FileEngine(RuleList.of(RuleKind.FILE, rules), injectors)


class TestFileEngineBasics:
    """Basic file engine tests."""

    def test_rejects_other_rule_kinds(self) -> None:
        """The engine only accepts file rules."""
        with pytest.raises(ValueError, match="fileRules"):
            FileEngine(RuleList(kind=RuleKind.ENV))

    def test_no_rules_allows(self) -> None:
        """Everything is visible without rules."""
        result = make_engine().check_file("src/index.ts")
        assert result.ok
        assert not result.blocked
        assert result.value is True
        assert result.policy is None

    def test_node_modules_denied(self) -> None:
        """A contains rule hides nested node_modules paths."""
        engine = make_engine(FileRule(pattern="node_modules", action=RuleAction.DENY))
        result = engine.check_file("packages/app/node_modules/react/index.js")

        assert result.blocked
        assert not result.ok
        assert result.reason == BlockReason.FILE_HIDDEN
        assert result.details is not None
        assert result.details.policy == "fileRules[0]"
        assert result.details.action == RuleAction.DENY
        assert result.details.target == "packages/app/node_modules/react/index.js"
        assert result.kind == RuleKind.FILE

    def test_deny_uses_rule_reason(self) -> None:
        """A rule reason replaces the default block reason."""
        engine = make_engine(FileRule(pattern=".env", action=RuleAction.DENY, reason="Secrets"))
        assert engine.check_file("app/.env").reason == "Secrets"

    def test_allow_rule_carries_context(self) -> None:
        """Allow rules pass their reason along as context."""
        engine = make_engine(
            FileRule(pattern="docs/", action=RuleAction.ALLOW, reason="Docs are public"),
            FileRule(pattern="docs", action=RuleAction.DENY),
        )
        result = engine.check_file("docs/index.md")
        assert result.ok
        assert result.context == "Docs are public"
        assert result.policy == "fileRules[0]"
        assert result.action == RuleAction.ALLOW


class TestFileEngineActions:
    """Tests for mask and rewrite."""

    def test_mask_blocks_with_default_replacement(self) -> None:
        """Masked files are blocked and carry a placeholder."""
        engine = make_engine(FileRule(pattern="secrets.json", action=RuleAction.MASK))
        result = engine.check_file("config/secrets.json")
        assert result.blocked
        assert result.reason == BlockReason.FILE_HIDDEN
        assert result.details is not None
        assert result.details.replacement == "hidden_by_policy"

    def test_mask_custom_replacement(self) -> None:
        """A mask replacement is reported in the details."""
        engine = make_engine(
            FileRule(pattern="secrets.json", action=RuleAction.MASK, replacement="{}")
        )
        result = engine.check_file("secrets.json")
        assert result.details is not None
        assert result.details.replacement == "{}"

    def test_rewrite_returns_replacement(self) -> None:
        """Rewritten files show the replacement content."""
        engine = make_engine(
            FileRule(pattern=".env", action=RuleAction.REWRITE, replacement="API_KEY=dummy")
        )
        result = engine.check_file(".env")
        assert result.ok
        assert result.value == "API_KEY=dummy"
        assert result.action == RuleAction.REWRITE

    def test_rewrite_without_replacement_blocks(self) -> None:
        """A rewrite rule with nothing to rewrite to fails closed."""
        engine = make_engine(FileRule(pattern=".env", action=RuleAction.REWRITE))
        result = engine.check_file(".env")
        assert result.blocked
        assert result.details is not None
        assert result.details.action == RuleAction.REWRITE

    def test_directory_denied(self) -> None:
        """Denied directories use the directory reason."""
        engine = make_engine(FileRule(pattern="node_modules", action=RuleAction.DENY))
        result = engine.check_directory("node_modules")
        assert result.blocked
        assert result.reason == BlockReason.DIRECTORY_HIDDEN

    def test_directory_rewrite_is_empty_listing(self) -> None:
        """Rewritten directories list nothing."""
        engine = make_engine(FileRule(pattern="dist", action=RuleAction.REWRITE))
        result = engine.check_directory("dist")
        assert result.ok
        assert result.value == []


class TestFileEngineInjectors:
    """Tests for injected content."""

    def test_injected_content_wins(self) -> None:
        """Injected file content short-circuits the rules."""
        engine = make_engine(
            FileRule(pattern=".env", action=RuleAction.DENY),
            injectors=Injectors(files=lambda path: "FAKE=1" if path == ".env" else None),
        )
        result = engine.check_file(".env")
        assert result.ok
        assert result.value == "FAKE=1"

    def test_injector_none_falls_through(self) -> None:
        """An injector returning None defers to the rules."""
        engine = make_engine(
            FileRule(pattern=".env", action=RuleAction.DENY),
            injectors=Injectors(files=lambda path: None),
        )
        assert engine.check_file(".env").blocked

    def test_injected_listing(self) -> None:
        """Injected directory listings short-circuit the rules."""
        engine = make_engine(
            FileRule(pattern="secret", action=RuleAction.DENY),
            injectors=Injectors(directories=lambda path: ["a.txt"]),
        )
        result = engine.check_directory("secret")
        assert result.ok
        assert result.value == ["a.txt"]


class TestFileEngineVisibility:
    """Tests for is_visible and filter_paths."""

    def test_filter_paths_preserves_order(self) -> None:
        """Visible paths are kept in their original order."""
        engine = make_engine(
            FileRule(pattern="node_modules", action=RuleAction.DENY),
            FileRule(pattern={"regex": r"\.env$"}, action=RuleAction.MASK),
        )
        paths = ["src/a.ts", "node_modules/x.js", ".env", "README.md"]
        assert engine.filter_paths(paths) == ["src/a.ts", "README.md"]

    def test_is_visible_ignores_injectors(self) -> None:
        """Visibility follows the rules only."""
        engine = make_engine(
            FileRule(pattern=".env", action=RuleAction.DENY),
            injectors=Injectors(files=lambda path: "FAKE=1"),
        )
        assert not engine.is_visible(".env")
        assert engine.is_visible("README.md")
