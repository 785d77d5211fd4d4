"""Last-modified index keyed by app directory."""

import logging
import time
from collections.abc import Iterable
from pathlib import Path

from workshop_runner.core.paths import WorkshopPaths

from .events import ChangeEmitter, ChangeEvent

logger = logging.getLogger(__name__)


def app_path_from_file_path(paths: WorkshopPaths, file_path: Path, *, is_dir: bool = False) -> Path | None:
    """Map a path inside the workshop to the app directory owning it.

    Args:
        paths: Workshop layout.
        file_path: Absolute path of a changed file or directory.
        is_dir: Whether ``file_path`` is a directory.

    Returns:
        The playground dir, an examples/<name> dir, an exercises/<ex>/<app>
        dir, an exercises/<ex> dir for files directly inside an exercise, or
        None for paths outside the tracked trees.

    Examples:
        >>> app_path_from_file_path(paths, root / "exercises/01.a/01.problem/src/x.ts")
        PosixPath('/ws/exercises/01.a/01.problem')

    """
    for base, depth in ((paths.playground_dir, 0), (paths.examples_dir, 1), (paths.exercises_dir, 2)):
        try:
            parts = file_path.relative_to(base).parts
        except ValueError:
            continue
        if depth == 0:
            return base
        # A file sitting at the app level belongs to its parent directory
        usable = len(parts) if is_dir else len(parts) - 1
        take = min(depth, usable)
        return base.joinpath(*parts[:take])
    return None


class ModifiedTimeIndex:
    """Latest observed change time per app directory.

    Subscribes to a ChangeEmitter and records, for the app directory owning
    each changed path, when the change was observed. Caches compare these
    times to their entries' creation time to decide whether to recompute.
    """

    def __init__(self, paths: WorkshopPaths) -> None:
        self._paths = paths
        self._times: dict[Path, float] = {}
        self._unsubscribe = None

    def attach(self, emitter: ChangeEmitter) -> None:
        """Start listening to ``emitter``."""
        self.detach()
        self._unsubscribe = emitter.subscribe(self.handle_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle_event(self, event: ChangeEvent) -> None:
        app_dir = app_path_from_file_path(self._paths, event.path, is_dir=event.is_dir)
        if app_dir is None:
            return
        self.touch(app_dir, event.mtime if event.mtime is not None else event.timestamp)

    def touch(self, directory: Path, when: float | None = None) -> None:
        """Record a change of ``directory`` at ``when`` (now by default)."""
        when = time.time() if when is None else when
        previous = self._times.get(directory)
        if previous is None or when > previous:
            self._times[directory] = when

    def get(self, directory: Path) -> float | None:
        return self._times.get(directory)

    def latest(self, directories: Iterable[Path]) -> float | None:
        """Most recent change among ``directories``, None if none tracked."""
        times = [self._times[d] for d in directories if d in self._times]
        return max(times) if times else None

    def latest_overall(self) -> float | None:
        return max(self._times.values()) if self._times else None

    def clear(self) -> None:
        self._times.clear()
