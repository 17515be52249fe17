"""hunkwise: parse git unified diffs into per-file, per-line models."""

from hunkwise.diff_parser import (
    UNKNOWN_FILE,
    DiffLine,
    DiffStat,
    FileDiff,
    Hunk,
    parse_git_diff,
    summarize,
)

__version__ = "0.1.0"

__all__ = [
    "UNKNOWN_FILE",
    "DiffLine",
    "DiffStat",
    "FileDiff",
    "Hunk",
    "parse_git_diff",
    "summarize",
    "__version__",
]
