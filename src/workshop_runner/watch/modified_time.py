"""Recursive directory modified times.

The watcher only tracks app-level structure; these scans answer "did
anything in this directory change after time T" by walking the whole tree,
honouring the directory's .gitignore files.
"""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from workshop_runner.cache import CacheRegistry
from workshop_runner.core.gitignore import GitignoreParser
from workshop_runner.core.walker import walk_tree

logger = logging.getLogger(__name__)

DIR_MODIFIED_TIME_TTL = 0.2
DEFAULT_SCAN_CONCURRENCY = 10
MISSING_MODIFIED_TIME = -1.0


def scan_dir_modified_time(directory: Path) -> float:
    """Latest mtime of ``directory`` and every non-ignored entry below it.

    Returns:
        The latest mtime, or -1 if the directory does not exist.

    """
    try:
        latest = directory.stat().st_mtime
    except FileNotFoundError:
        return MISSING_MODIFIED_TIME
    parser = GitignoreParser(directory)
    for entry in walk_tree(directory, skip=lambda rel, is_dir: parser.is_ignored_relative(rel, is_dir=is_dir)):
        latest = max(latest, entry.mtime)
    return latest


class ModifiedTimeService:
    """Cached, concurrency-limited directory mtime scans."""

    def __init__(self, caches: CacheRegistry, concurrency: int = DEFAULT_SCAN_CONCURRENCY) -> None:
        self._caches = caches
        self._semaphore = asyncio.Semaphore(concurrency)

    async def _scan(self, directory: Path) -> float:
        async with self._semaphore:
            return await asyncio.to_thread(scan_dir_modified_time, directory)

    async def get_dir_modified_time(self, directory: Path) -> float:
        """Latest mtime below ``directory``, cached for a fraction of a second."""
        return await self._caches.cachified(
            self._caches.get("dir-modified-time"),
            str(directory),
            lambda: self._scan(directory),
            ttl=DIR_MODIFIED_TIME_TTL,
        )

    async def modified_more_recently_than(self, when: float, directories: Iterable[Path]) -> bool:
        """Whether anything in ``directories`` changed after ``when``.

        Scans run concurrently; the answer is returned as soon as one
        directory is found newer.
        """
        scans = [asyncio.ensure_future(self.get_dir_modified_time(d)) for d in directories]
        try:
            for finished in asyncio.as_completed(scans):
                if await finished > when:
                    return True
            return False
        finally:
            for scan in scans:
                scan.cancel()
