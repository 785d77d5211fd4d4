"""Parsed git diff structures and the flat diff-file summary.

Provides:
- FileChangeType / LineType: what changed in a file, and per line
- DiffLine / Hunk / FileChange / ParsedDiff: parser output
- DiffStatus / DiffFile: the cached, API-facing summary of one changed file
"""

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, TypeAdapter


class FileChangeType(StrEnum):
    CHANGED = "changed"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineType(StrEnum):
    ADDED = "added"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    NO_NEWLINE = "no-newline"


@dataclass(frozen=True)
class DiffLine:
    type: LineType
    content: str
    old_lineno: int | None = None
    new_lineno: int | None = None


@dataclass
class Hunk:
    """One ``@@`` block, or a binary-file notice when ``binary`` is set.

    Attributes:
        old_start: First line of the range in the old file.
        old_lines: Length of the old range.
        new_start: First line of the range in the new file.
        new_lines: Length of the new range.
        context: Text after the closing ``@@`` (usually a function name).
        lines: Lines of the hunk in order.
        binary: True for "Binary files ... differ" notices.

    """

    old_start: int = 1
    old_lines: int = 0
    new_start: int = 1
    new_lines: int = 0
    context: str = ""
    lines: list[DiffLine] = field(default_factory=list)
    binary: bool = False


@dataclass
class FileChange:
    """All changes to one file.

    For renames ``path_before`` and ``path_after`` differ; otherwise both
    equal ``path``.
    """

    type: FileChangeType
    path_before: str
    path_after: str
    hunks: list[Hunk] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.path_before if self.type is FileChangeType.DELETED else self.path_after

    @property
    def is_binary(self) -> bool:
        return any(h.binary for h in self.hunks)


@dataclass
class ParsedDiff:
    files: list[FileChange] = field(default_factory=list)


class DiffStatus(StrEnum):
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNKNOWN = "unknown"


STATUS_BY_CHANGE_TYPE = {
    FileChangeType.CHANGED: DiffStatus.MODIFIED,
    FileChangeType.ADDED: DiffStatus.ADDED,
    FileChangeType.DELETED: DiffStatus.DELETED,
    FileChangeType.RENAMED: DiffStatus.RENAMED,
}


class DiffFile(BaseModel):
    """A changed file between two apps.

    Attributes:
        status: Kind of change.
        path: Path relative to the app directory (the old path for renames).
        line: First line of the first hunk, 1 when unknown.

    """

    model_config = ConfigDict(frozen=True)

    status: DiffStatus
    path: str
    line: int


DIFF_FILE_LIST_ADAPTER = TypeAdapter(list[DiffFile])
