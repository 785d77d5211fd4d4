"""Parser for ``git diff`` unified output.

Only what ``git diff --no-index`` produces between two directory copies is
accepted: changed, added, deleted and renamed files, text hunks and binary
notices. Copies, combined diffs and unrecognised extended headers raise
DiffParseError rather than being silently dropped.
"""

import logging
import re

from workshop_runner.core.exceptions import DiffParseError

from .models import DiffLine, FileChange, FileChangeType, Hunk, LineType, ParsedDiff

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"

HEADER_PATTERN = re.compile(r"^diff --git (?P<paths>.+)$")
HUNK_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")
BINARY_PATTERN = re.compile(r"^Binary files (?P<before>.+) and (?P<after>.+) differ$")

# Extended header lines that carry nothing the parser needs
IGNORED_HEADER_PREFIXES = (
    "index ",
    "old mode ",
    "new mode ",
    "similarity index ",
    "dissimilarity index ",
)

_ESCAPES = {
    "a": 7,
    "b": 8,
    "t": 9,
    "n": 10,
    "v": 11,
    "f": 12,
    "r": 13,
    '"': 34,
    "\\": 92,
}


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of paths with special characters.

    Examples:
        >>> unquote_path('"caf\\\\303\\\\251.txt"')
        'café.txt'
        >>> unquote_path("plain.txt")
        'plain.txt'

    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\":
            out.extend(char.encode("utf-8"))
            i += 1
            continue
        nxt = body[i + 1 : i + 2]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
        elif re.match(r"[0-7]{3}", body[i + 1 : i + 4]):
            out.append(int(body[i + 1 : i + 4], 8))
            i += 4
        else:
            out.extend(b"\\")
            i += 1
    return out.decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str, no_prefix: bool) -> str:
    path = unquote_path(path.rstrip("\t"))
    if not no_prefix and path.startswith(prefix):
        return path[len(prefix) :]
    return path


def _common_suffix_length(a: str, b: str) -> int:
    n = 0
    while n < min(len(a), len(b)) and a[-1 - n] == b[-1 - n]:
        n += 1
    return n


def split_header_paths(paths: str) -> tuple[str, str]:
    """Split the two paths of a ``diff --git`` line.

    Unquoted paths may contain spaces, so the split whose halves share the
    longest common suffix is chosen.

    Raises:
        DiffParseError: If the line does not hold two paths.

    """
    if paths.startswith('"'):
        match = re.match(r'^("(?:[^"\\]|\\.)*") (.+)$', paths)
        if match is None:
            raise DiffParseError("Malformed diff header", line=paths)
        return match.group(1), match.group(2)
    if paths.endswith('"'):
        match = re.match(r'^(.+?) ("(?:[^"\\]|\\.)*")$', paths)
        if match is None:
            raise DiffParseError("Malformed diff header", line=paths)
        return match.group(1), match.group(2)

    candidates = [i for i, char in enumerate(paths) if char == " "]
    if not candidates:
        raise DiffParseError("Malformed diff header", line=paths)
    best = max(candidates, key=lambda i: (_common_suffix_length(paths[:i], paths[i + 1 :]), -i))
    return paths[:best], paths[best + 1 :]


class GitDiffParser:
    """Line-driven parser for unified git diff output.

    Args:
        no_prefix: The diff was produced with ``--no-prefix``; when False the
            ``a/`` and ``b/`` prefixes are stripped from paths.

    """

    def __init__(self, *, no_prefix: bool = True) -> None:
        self.no_prefix = no_prefix

    def parse(self, text: str) -> ParsedDiff:
        """Parse diff text.

        Args:
            text: Output of ``git diff``.

        Returns:
            ParsedDiff with one FileChange per file block.

        Raises:
            DiffParseError: On copies, combined diffs or lines that fit no
                known part of a file block.

        """
        result = ParsedDiff()
        current: FileChange | None = None
        hunk: Hunk | None = None
        old_line = new_line = 0
        old_left = new_left = 0

        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        # file content may hold \f, \v or U+2028, which are not line breaks here
        for line in lines:
            header = HEADER_PATTERN.match(line)
            if header is not None:
                before, after = split_header_paths(header.group("paths"))
                current = FileChange(
                    type=FileChangeType.CHANGED,
                    path_before=_strip_prefix(before, "a/", self.no_prefix),
                    path_after=_strip_prefix(after, "b/", self.no_prefix),
                )
                result.files.append(current)
                hunk = None
                continue

            if line.startswith(("diff --cc ", "diff --combined ")):
                raise DiffParseError("Combined diffs are not supported", line=line)
            if current is None:
                if line.strip():
                    raise DiffParseError("Unexpected line before the first file header", line=line)
                continue

            hunk_match = HUNK_PATTERN.match(line)
            if hunk_match is not None:
                old_start, old_count, new_start, new_count, context = hunk_match.groups()
                hunk = Hunk(
                    old_start=int(old_start),
                    old_lines=int(old_count) if old_count is not None else 1,
                    new_start=int(new_start),
                    new_lines=int(new_count) if new_count is not None else 1,
                    context=context,
                )
                current.hunks.append(hunk)
                old_line, new_line = hunk.old_start, hunk.new_start
                old_left, new_left = hunk.old_lines, hunk.new_lines
                continue

            if hunk is not None and (old_left > 0 or new_left > 0):
                marker, content = line[:1], line[1:]
                if marker == "+":
                    hunk.lines.append(DiffLine(LineType.ADDED, content, None, new_line))
                    new_line += 1
                    new_left -= 1
                elif marker == "-":
                    hunk.lines.append(DiffLine(LineType.DELETED, content, old_line, None))
                    old_line += 1
                    old_left -= 1
                elif marker in (" ", ""):
                    hunk.lines.append(DiffLine(LineType.UNCHANGED, content, old_line, new_line))
                    old_line += 1
                    new_line += 1
                    old_left -= 1
                    new_left -= 1
                elif marker == "\\":
                    hunk.lines.append(DiffLine(LineType.NO_NEWLINE, content.strip()))
                else:
                    raise DiffParseError("Unexpected line inside hunk", line=line)
                continue

            if line.startswith("\\") and hunk is not None:
                hunk.lines.append(DiffLine(LineType.NO_NEWLINE, line[1:].strip()))
                continue

            self._parse_extended_header(current, line)

        return result

    def _parse_extended_header(self, current: FileChange, line: str) -> None:
        if line.startswith("new file mode "):
            current.type = FileChangeType.ADDED
        elif line.startswith("deleted file mode "):
            current.type = FileChangeType.DELETED
        elif line.startswith("rename from "):
            current.type = FileChangeType.RENAMED
            current.path_before = unquote_path(line[len("rename from ") :])
        elif line.startswith("rename to "):
            current.type = FileChangeType.RENAMED
            current.path_after = unquote_path(line[len("rename to ") :])
        elif line.startswith(("copy from ", "copy to ")):
            raise DiffParseError("Copied files are not supported", line=line)
        elif line.startswith("--- "):
            path = line[4:].rstrip("\t")
            if path == DEV_NULL:
                current.type = FileChangeType.ADDED
            elif current.type is not FileChangeType.RENAMED:
                current.path_before = _strip_prefix(path, "a/", self.no_prefix)
        elif line.startswith("+++ "):
            path = line[4:].rstrip("\t")
            if path == DEV_NULL:
                current.type = FileChangeType.DELETED
            elif current.type is not FileChangeType.RENAMED:
                current.path_after = _strip_prefix(path, "b/", self.no_prefix)
        elif (binary := BINARY_PATTERN.match(line)) is not None:
            if binary.group("before") == DEV_NULL:
                current.type = FileChangeType.ADDED
            elif binary.group("after") == DEV_NULL:
                current.type = FileChangeType.DELETED
            current.hunks.append(Hunk(binary=True))
        elif line.startswith(IGNORED_HEADER_PREFIXES) or not line.strip():
            return
        else:
            raise DiffParseError("Unrecognised diff line", line=line)


def parse_git_diff(text: str, *, no_prefix: bool = True) -> ParsedDiff:
    """Parse ``git diff`` output; see GitDiffParser."""
    return GitDiffParser(no_prefix=no_prefix).parse(text)
