"""Polling watcher for the workshop's app directories.

Only the structure is watched: the exercise, example and playground trees
down to app-directory depth, plus a few tracked files at those levels. Deep
edits inside an app are picked up by the recursive mtime scan instead.
"""

import asyncio
import contextlib
import logging
import time
from pathlib import Path

from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.core.walker import walk_tree

from .events import ChangeEmitter, ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

TRACKED_FILES = frozenset({"README.mdx", "FINISHED.mdx", "package.json"})
DEFAULT_WATCH_INTERVAL = 1.0

Snapshot = dict[Path, tuple[float, bool]]


class PollingWatcher:
    """Emits ChangeEvents by diffing periodic directory snapshots.

    The first poll reports every tracked path as ADDED so subscribers start
    with a complete picture; later polls report only differences.

    Attributes:
        interval: Seconds between polls once started.

    """

    def __init__(
        self,
        paths: WorkshopPaths,
        emitter: ChangeEmitter,
        interval: float = DEFAULT_WATCH_INTERVAL,
    ) -> None:
        self._paths = paths
        self._emitter = emitter
        self.interval = interval
        self._snapshot: Snapshot | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _roots(self) -> list[tuple[Path, int]]:
        return [
            (self._paths.exercises_dir, 2),
            (self._paths.examples_dir, 1),
            (self._paths.playground_dir, 0),
        ]

    def _scan(self) -> Snapshot:
        snapshot: Snapshot = {}
        for root, app_depth in self._roots():
            try:
                root_stat = root.stat()
            except FileNotFoundError:
                continue
            snapshot[root] = (root_stat.st_mtime, True)

            def skip(rel_path: str, is_dir: bool, app_depth: int = app_depth) -> bool:
                depth = rel_path.count("/") + 1
                if is_dir:
                    return depth > app_depth
                return rel_path.rsplit("/", 1)[-1] not in TRACKED_FILES or depth > app_depth + 1

            for entry in walk_tree(root, skip=skip, max_depth=app_depth + 1):
                snapshot[entry.path] = (entry.mtime, entry.is_dir)
        return snapshot

    async def poll(self) -> list[ChangeEvent]:
        """Scan once and emit events for what changed since the last poll.

        Returns:
            The emitted events.

        """
        current = await asyncio.to_thread(self._scan)
        previous = self._snapshot if self._snapshot is not None else {}
        self._snapshot = current
        now = time.time()

        events: list[ChangeEvent] = []
        for path, (mtime, is_dir) in current.items():
            before = previous.get(path)
            if before is None:
                events.append(ChangeEvent(path, ChangeKind.ADDED, is_dir, mtime, now))
            elif before[0] != mtime:
                events.append(ChangeEvent(path, ChangeKind.MODIFIED, is_dir, mtime, now))
        for path, (_, is_dir) in previous.items():
            if path not in current:
                events.append(ChangeEvent(path, ChangeKind.REMOVED, is_dir, None, now))

        for event in events:
            self._emitter.emit(event)
        if events and previous:
            logger.debug("Watcher observed %d change(s)", len(events))
        return events

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.poll()
            except OSError as e:
                logger.warning("Watcher poll failed: %s", e)

    async def start(self) -> None:
        """Prime the snapshot and start polling in the background."""
        if self.is_running:
            return
        await self.poll()
        self._task = asyncio.create_task(self._run(), name="workshop-watcher")
        logger.info("Watching %s every %.1fs", self._paths.root, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
