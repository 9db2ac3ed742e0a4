"""
Unit tests for command normalization.

Tests cover:
- Shell wrapper, eval, absolute path and package runner stripping
- Nested wrappers and the unwrap depth limit
- Variant ordering and de-duplication
- Per-transformation options
- Describing which transformations were applied
"""

import pytest

from veil.policy.normalize import (
    MAX_UNWRAP_DEPTH,
    describe_normalization,
    is_wrapped_command,
    normalize_command,
    resolve_bypass_options,
)
from veil.schema import NormalizeOptions


# =============================================================================
# normalize_command
# =============================================================================


class TestNormalizeCommand:
    """Tests for variant generation."""

    def test_plain_command_single_variant(self) -> None:
        """An unwrapped command yields only itself."""
        assert normalize_command("git status") == ["git status"]

    def test_raw_is_trimmed_first_variant(self) -> None:
        """The first variant is always the trimmed raw command."""
        variants = normalize_command('  bash -c "ls"  ')
        assert variants[0] == 'bash -c "ls"'

    def test_empty_input(self) -> None:
        """Empty and whitespace-only input yield no variants."""
        assert normalize_command("") == []
        assert normalize_command("   ") == []

    @pytest.mark.parametrize(
        "raw",
        [
            'bash -c "rm -rf /"',
            "sh -c 'rm -rf /'",
            "zsh -c rm -rf /",
            'bash -l -c "rm -rf /"',
        ],
    )
    def test_shell_wrappers(self, raw: str) -> None:
        """Shell wrappers, quoted or not, are unwrapped."""
        assert normalize_command(raw) == [raw, "rm -rf /"]

    def test_nested_wrappers(self) -> None:
        """Nested shell wrappers are unwrapped level by level."""
        variants = normalize_command("bash -c \"sh -c 'git push'\"")
        assert variants[-1] == "git push"
        assert "sh -c 'git push'" in variants

    def test_unwrap_depth_limited(self) -> None:
        """Unwrapping stops after the maximum depth."""
        command = "git push"
        for _ in range(MAX_UNWRAP_DEPTH + 2):
            command = f"sh -c {command}"
        variants = normalize_command(command)
        assert "git push" not in variants
        assert len(variants) == MAX_UNWRAP_DEPTH + 1

    def test_eval_wrapper(self) -> None:
        """eval wrappers are unwrapped."""
        assert normalize_command('eval "git push"') == ['eval "git push"', "git push"]
        assert normalize_command("eval git push") == ["eval git push", "git push"]

    def test_absolute_path(self) -> None:
        """Absolute executable paths are stripped."""
        assert normalize_command("/usr/bin/git push") == ["/usr/bin/git push", "git push"]

    @pytest.mark.parametrize(
        "raw",
        ["npx wrangler deploy", "pnpx wrangler deploy", "yarn dlx wrangler deploy", "bunx wrangler deploy"],
    )
    def test_package_runners(self, raw: str) -> None:
        """Package runner prefixes are stripped."""
        assert normalize_command(raw) == [raw, "wrangler deploy"]

    def test_transformations_chain(self) -> None:
        """Transformations apply to the output of earlier ones."""
        variants = normalize_command('bash -c "/usr/local/bin/npx wrangler deploy"')
        assert variants == [
            'bash -c "/usr/local/bin/npx wrangler deploy"',
            "/usr/local/bin/npx wrangler deploy",
            "npx wrangler deploy",
            "wrangler deploy",
        ]

    def test_variants_deduplicated(self) -> None:
        """Identical variants appear once."""
        variants = normalize_command('bash -c "ls"')
        assert len(variants) == len(set(variants))

    def test_options_disable_transformations(self) -> None:
        """Disabled transformations are skipped."""
        options = NormalizeOptions(unwrap_shells=False)
        assert normalize_command('bash -c "git push"', options) == ['bash -c "git push"']

        options = NormalizeOptions(strip_paths=False)
        assert normalize_command("/usr/bin/git push", options) == ["/usr/bin/git push"]

        options = NormalizeOptions(unwrap_eval=False)
        assert normalize_command("eval git push", options) == ["eval git push"]

        options = NormalizeOptions(strip_package_runners=False)
        assert normalize_command("npx wrangler", options) == ["npx wrangler"]

    @pytest.mark.parametrize(
        "options",
        [
            NormalizeOptions(),
            NormalizeOptions(strip_paths=False),
            NormalizeOptions(unwrap_shells=False, unwrap_eval=False),
        ],
    )
    def test_repeated_calls_identical(self, options: NormalizeOptions) -> None:
        """Normalizing the same command twice gives the same variants."""
        commands = [
            'bash -c "git push"',
            "sh -c 'eval /usr/bin/git push'",
            "bunx wrangler deploy",
            "bash -c \"sh -c 'npx rm -rf /'\"",
            "ls -la",
        ]
        snapshot = options.model_dump()
        for command in commands:
            first = normalize_command(command, options)
            second = normalize_command(command, options)
            assert first == second
        assert options.model_dump() == snapshot


# =============================================================================
# is_wrapped_command
# =============================================================================


class TestIsWrappedCommand:
    """Tests for wrapper detection."""

    @pytest.mark.parametrize(
        "raw",
        ['bash -c "ls"', "eval ls", "/bin/ls", "npx prettier ."],
    )
    def test_wrapped(self, raw: str) -> None:
        """Every strippable wrapper is detected."""
        assert is_wrapped_command(raw)

    @pytest.mark.parametrize("raw", ["ls -la", "git push", "bash script.sh", ""])
    def test_not_wrapped(self, raw: str) -> None:
        """Plain commands are not wrapped."""
        assert not is_wrapped_command(raw)


# =============================================================================
# describe_normalization
# =============================================================================


class TestDescribeNormalization:
    """Tests for describing applied transformations."""

    def test_identical_returns_none(self) -> None:
        """No description when nothing changed."""
        assert describe_normalization("git push", "git push") is None
        assert describe_normalization("  git push ", "git push") is None

    def test_shell_wrapper(self) -> None:
        """Shell unwrapping is described."""
        assert describe_normalization('bash -c "rm -rf /"', "rm -rf /") == "subshell wrapper stripped"

    def test_nested_wrappers_listed_once(self) -> None:
        """Repeated transformations are listed once."""
        description = describe_normalization("bash -c \"sh -c 'git push'\"", "git push")
        assert description == "subshell wrapper stripped"

    def test_chain_lists_every_step(self) -> None:
        """Every transformation up to the normalized form is listed."""
        description = describe_normalization(
            'bash -c "/usr/local/bin/npx wrangler deploy"',
            "wrangler deploy",
        )
        assert description == (
            "subshell wrapper stripped, absolute path stripped, package runner stripped"
        )

    def test_only_steps_up_to_target(self) -> None:
        """Steps after the normalized form are not listed."""
        description = describe_normalization("/usr/bin/npx wrangler", "npx wrangler")
        assert description == "absolute path stripped"

    def test_eval(self) -> None:
        """eval unwrapping is described."""
        assert describe_normalization('eval "git push"', "git push") == "eval wrapper stripped"

    def test_unrelated_falls_back(self) -> None:
        """Forms not produced by the normalizer get a generic description."""
        assert describe_normalization("git push", "something else") == "command normalized"


class TestResolveBypassOptions:
    """Tests for turning bypass settings into options."""

    def test_true_and_none_enable_all(self) -> None:
        """True and None enable every transformation."""
        assert resolve_bypass_options(True) == NormalizeOptions()
        assert resolve_bypass_options(None) == NormalizeOptions()

    def test_false_disables(self) -> None:
        """False disables normalization."""
        assert resolve_bypass_options(False) is None

    def test_options_passed_through(self) -> None:
        """Explicit options are used as given."""
        options = NormalizeOptions(strip_paths=False)
        assert resolve_bypass_options(options) is options
