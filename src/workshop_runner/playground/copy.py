"""Mirroring a source app directory into the playground.

Provides:
- PlaygroundCopyFilter: which source entries are copied
- mirror_directory: filtered, byte-compared copy followed by orphan removal
- SyncStats: counters reported by mirror_directory
"""

import filecmp
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from workshop_runner.core.gitignore import GitignoreParser
from workshop_runner.core.walker import walk_tree

logger = logging.getLogger(__name__)

BUILD_DIRS = ("build", "public/build")
ALWAYS_COPIED_DIRNAME = "node_modules"
ALWAYS_COPIED_SUFFIX = ".env"


def _under(rel_path: str, prefix: str) -> bool:
    return rel_path == prefix or rel_path.startswith(prefix + "/")


def in_build_output(rel_path: str) -> bool:
    """True for entries inside any ``build`` directory (not the directory itself)."""
    return "build" in rel_path.split("/")[:-1]


class PlaygroundCopyFilter:
    """Decides which entries of a source app are copied to the playground.

    Order of precedence:
    1. ``build`` and ``public/build`` at the app root are never copied.
    2. Anything inside ``node_modules`` and any ``*.env`` file is copied even
       when git-ignored.
    3. Everything else follows the source's .gitignore files.
    """

    def __init__(self, src_dir: Path) -> None:
        self.src_dir = src_dir
        self._gitignore = GitignoreParser(src_dir)

    def should_copy(self, rel_path: str, is_dir: bool) -> bool:
        if any(_under(rel_path, build_dir) for build_dir in BUILD_DIRS):
            return False
        if ALWAYS_COPIED_DIRNAME in rel_path.split("/"):
            return True
        if rel_path.endswith(ALWAYS_COPIED_SUFFIX):
            return True
        return not self._gitignore.is_ignored_relative(rel_path, is_dir=is_dir)


@dataclass
class SyncStats:
    copied: int = 0
    unchanged: int = 0
    deleted: int = 0


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def _same_symlink(src: Path, dest: Path) -> bool:
    return dest.is_symlink() and os.readlink(dest) == os.readlink(src)


def _same_contents(src: Path, dest: Path) -> bool:
    if not dest.is_file() or dest.is_symlink():
        return False
    if src.stat().st_size != dest.stat().st_size:
        return False
    return filecmp.cmp(src, dest, shallow=False)


def _copy_entry(src: Path, dest: Path, *, is_dir: bool, is_symlink: bool) -> bool:
    """Copy one entry, returning False when the destination was already identical."""
    if is_dir:
        if dest.exists() and not dest.is_dir():
            _remove(dest)
        dest.mkdir(parents=True, exist_ok=True)
        return False

    if is_symlink:
        if _same_symlink(src, dest):
            return False
        if dest.exists() or dest.is_symlink():
            _remove(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(os.readlink(src), dest)
        return True

    if dest.is_dir() and not dest.is_symlink():
        _remove(dest)
    elif _same_contents(src, dest):
        return False
    elif dest.is_symlink():
        _remove(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    return True


def _file_set(directory: Path) -> set[str]:
    return {
        entry.rel_path
        for entry in walk_tree(directory)
        if not in_build_output(entry.rel_path)
    }


def mirror_directory(src_dir: Path, dest_dir: Path, copy_filter: PlaygroundCopyFilter) -> SyncStats:
    """Make ``dest_dir`` mirror ``src_dir``.

    Entries accepted by ``copy_filter`` are copied; files whose bytes already
    match are left untouched so file watchers on ``dest_dir`` see as few
    writes as possible. Afterwards every destination entry that has no
    source counterpart is deleted. Contents of ``build`` directories are left
    out of that comparison on both sides.

    Args:
        src_dir: Directory to copy from.
        dest_dir: Directory to update, created if missing.
        copy_filter: Decides which source entries are copied.

    Returns:
        Counters for copied, unchanged and deleted entries.

    """
    stats = SyncStats()
    dest_dir.mkdir(parents=True, exist_ok=True)

    def skip(rel_path: str, is_dir: bool) -> bool:
        return not copy_filter.should_copy(rel_path, is_dir)

    for entry in walk_tree(src_dir, skip=skip):
        target = dest_dir / entry.rel_path
        try:
            if _copy_entry(entry.path, target, is_dir=entry.is_dir, is_symlink=entry.is_symlink):
                stats.copied += 1
            elif not entry.is_dir:
                stats.unchanged += 1
        except OSError as e:
            logger.warning("Failed to copy %s to %s: %s", entry.path, target, e)

    src_files = _file_set(src_dir)
    removed: list[str] = []
    for rel_path in sorted(_file_set(dest_dir) - src_files):
        if any(_under(rel_path, parent) for parent in removed):
            continue
        try:
            _remove(dest_dir / rel_path)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", dest_dir / rel_path, e)
            continue
        removed.append(rel_path)
        stats.deleted += 1

    return stats
