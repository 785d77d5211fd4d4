"""Diff engine: staged copies, git diff parsing and rendering."""

from workshop_runner.diff.models import (
    DiffFile,
    DiffLine,
    DiffStatus,
    FileChange,
    FileChangeType,
    Hunk,
    LineType,
    ParsedDiff,
)
from workshop_runner.diff.parser import GitDiffParser, parse_git_diff, unquote_path
from workshop_runner.diff.service import DiffService, diff_cache_key
from workshop_runner.diff.staging import DEFAULT_IGNORE_PATTERNS, StagedPair, stage_apps

__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "DiffFile",
    "DiffLine",
    "DiffService",
    "DiffStatus",
    "FileChange",
    "FileChangeType",
    "GitDiffParser",
    "Hunk",
    "LineType",
    "ParsedDiff",
    "StagedPair",
    "diff_cache_key",
    "parse_git_diff",
    "stage_apps",
    "unquote_path",
]
