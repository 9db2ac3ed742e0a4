"""
Policy evaluation for Veil.

Every access an agent makes is checked here before the caller performs it:

    - FileEngine: file reads and directory listings
    - EnvEngine:  environment variable reads
    - CliEngine:  shell commands, with bypass protection

All engines share the same core: first-match-wins evaluation over an ordered
rule list, where no match means allow. The engines are pure. They perform no
I/O and raise nothing for well-formed input; blocks are returned as data.
"""

from veil.policy.cli_engine import CliEngine
from veil.policy.env_engine import EnvEngine
from veil.policy.file_engine import FileEngine
from veil.policy.matching import (
    EvaluationResult,
    evaluate,
    find_all_matches,
    mask_value,
    matches,
)
from veil.policy.normalize import (
    describe_normalization,
    is_wrapped_command,
    normalize_command,
)

__all__ = [
    "CliEngine",
    "EnvEngine",
    "FileEngine",
    "EvaluationResult",
    "evaluate",
    "find_all_matches",
    "mask_value",
    "matches",
    "describe_normalization",
    "is_wrapped_command",
    "normalize_command",
]
