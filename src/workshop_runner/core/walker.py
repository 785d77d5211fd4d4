"""Iterative directory walking shared by scans, copies and diffs."""

import logging
import os
from collections import deque
from collections.abc import Callable, Generator
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

SkipFn = Callable[[str, bool], bool]


class TreeEntry(NamedTuple):
    """A single entry below a walked root.

    Attributes:
        path: Absolute path of the entry.
        rel_path: Posix path relative to the walk root.
        is_dir: True for real directories (symlinks count as files).
        is_symlink: True if the entry itself is a symlink.
        mtime: Modification time, without following symlinks.
        depth: 1 for direct children of the root.

    """

    path: Path
    rel_path: str
    is_dir: bool
    is_symlink: bool
    mtime: float
    depth: int


def walk_tree(
    root: Path,
    *,
    skip: SkipFn | None = None,
    max_depth: int | None = None,
) -> Generator[TreeEntry, None, None]:
    """Walk ``root`` breadth-first without following symlinks.

    Entries of one directory are yielded in name order. A skipped directory
    is not descended into.

    Args:
        root: Directory to walk. A missing root yields nothing.
        skip: Predicate on (rel_path, is_dir); True drops the entry.
        max_depth: Deepest level to yield, unlimited when None.

    Yields:
        TreeEntry for every entry that is not skipped.

    """
    queue: deque[tuple[Path, str, int]] = deque([(root, "", 0)])
    while queue:
        dir_path, rel_dir, depth = queue.popleft()
        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except FileNotFoundError:
            continue
        except NotADirectoryError:
            continue
        except PermissionError as e:
            logger.warning("Cannot scan directory %s: %s", dir_path, e)
            continue

        for entry in entries:
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
            is_symlink = entry.is_symlink()
            is_dir = entry.is_dir(follow_symlinks=False)
            if skip is not None and skip(rel_path, is_dir):
                continue
            try:
                mtime = entry.stat(follow_symlinks=False).st_mtime
            except FileNotFoundError:
                continue
            yield TreeEntry(Path(entry.path), rel_path, is_dir, is_symlink, mtime, depth + 1)
            if is_dir and (max_depth is None or depth + 1 < max_depth):
                queue.append((Path(entry.path), rel_path, depth + 1))
