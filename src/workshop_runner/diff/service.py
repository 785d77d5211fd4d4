"""Diffs between two apps.

Provides:
- DiffService: flat changed-file lists, rendered diff documents and raw diff
  text, cached per app pair and invalidated by directory changes.
"""

import asyncio
import logging
from typing import Any

from workshop_runner.cache import CacheRegistry
from workshop_runner.cache.entry import CacheEntry
from workshop_runner.cache.policy import RefreshPolicy
from workshop_runner.catalog.models import BaseApp, BrowserTestInfo
from workshop_runner.core.async_utils import spawn_background
from workshop_runner.core.config import RunnerConfig
from workshop_runner.core.exceptions import DiffError, DiffToolNotFoundError
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.watch.index import ModifiedTimeIndex
from workshop_runner.watch.modified_time import ModifiedTimeService

from .models import (
    DIFF_FILE_LIST_ADAPTER,
    STATUS_BY_CHANGE_TYPE,
    DiffFile,
    DiffStatus,
    FileChange,
    FileChangeType,
)
from .parser import parse_git_diff
from .render import DiffRenderer, render_document, render_same_app
from .staging import StagedPair, stage_apps, staged_path_to_relative

logger = logging.getLogger(__name__)

DIFF_ARGS = (
    "diff",
    "--no-index",
    "--color=never",
    "--color-moved-ws=allow-indentation-change",
    "--no-prefix",
    "--ignore-blank-lines",
    "--ignore-space-change",
)


def diff_cache_key(app1: BaseApp, app2: BaseApp) -> str:
    return f"{app1.relative_path}__vs__{app2.relative_path}"


def app_test_files(app: BaseApp) -> list[str]:
    return list(app.test.test_files) if isinstance(app.test, BrowserTestInfo) else []


def _first_line(change: FileChange) -> int:
    if change.type is FileChangeType.CHANGED and change.hunks and not change.hunks[0].binary:
        return change.hunks[0].old_start
    return 1


class DiffService:
    """Computes diffs between apps with ``git diff --no-index``.

    Both apps are copied to scratch directories first (see staging), the
    copies are diffed and removed in the background once git returns.
    """

    def __init__(
        self,
        config: RunnerConfig,
        paths: WorkshopPaths,
        caches: CacheRegistry,
        index: ModifiedTimeIndex,
        mtimes: ModifiedTimeService,
    ) -> None:
        self.config = config
        self.paths = paths
        self._caches = caches
        self._index = index
        self._mtimes = mtimes
        self._cleanup_tasks: set[asyncio.Task[Any]] = set()

    # -- invalidation --------------------------------------------------------

    async def refresh_policy(self, app1: BaseApp, app2: BaseApp, entry: CacheEntry | None) -> RefreshPolicy:
        """Decide whether a cached diff of this pair is still valid.

        The watcher's per-app times are checked first; only when they say
        nothing changed are both trees scanned for newer files.
        """
        if entry is None:
            return RefreshPolicy.force_fresh()
        created = entry.metadata.created_time
        for app in (app1, app2):
            modified = self._index.get(app.full_path)
            if modified is not None and modified > created:
                return RefreshPolicy.force_fresh()
        if await self._mtimes.modified_more_recently_than(created, [app1.full_path, app2.full_path]):
            return RefreshPolicy.force_fresh()
        return RefreshPolicy.default()

    # -- git -----------------------------------------------------------------

    async def run_diff(self, staged: StagedPair) -> str:
        """Run git on a staged pair and return its output.

        git exits with 1 when the trees differ, which is the expected
        outcome; anything above 1 is a failure.

        Raises:
            DiffToolNotFoundError: If git cannot be executed.
            DiffError: If git reports an error.

        """
        command = self.config.git_command
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *DIFF_ARGS,
                staged.app1_rel,
                staged.app2_rel,
                cwd=staged.base_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DiffToolNotFoundError(f"{command} is not installed or not on PATH", command=command) from e
        stdout, stderr = await process.communicate()
        if process.returncode not in (0, 1):
            raise DiffError(
                f"{command} diff exited with code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8", errors="replace")

    async def _diff_apps(self, app1: BaseApp, app2: BaseApp) -> tuple[StagedPair, str]:
        staged = await asyncio.to_thread(stage_apps, self.paths, app1, app2)
        try:
            return staged, await self.run_diff(staged)
        finally:
            spawn_background(
                asyncio.to_thread(staged.remove),
                self._cleanup_tasks,
                name=f"diff-cleanup:{app1.name}:{app2.name}",
            )

    # -- diff files ----------------------------------------------------------

    async def _compute_diff_files(self, app1: BaseApp, app2: BaseApp) -> list[DiffFile]:
        if app1.name == app2.name:
            return []
        _, output = await self._diff_apps(app1, app2)
        parsed = parse_git_diff(output)
        test_files = set(app_test_files(app1)) | set(app_test_files(app2))
        files = [
            DiffFile(
                status=STATUS_BY_CHANGE_TYPE.get(change.type, DiffStatus.UNKNOWN),
                path=staged_path_to_relative(
                    change.path_before if change.type is not FileChangeType.ADDED else change.path_after
                ),
                line=_first_line(change),
            )
            for change in parsed.files
        ]
        return [f for f in files if f.path not in test_files]

    async def get_diff_files(
        self,
        app1: BaseApp,
        app2: BaseApp,
        policy: RefreshPolicy | None = None,
    ) -> list[DiffFile]:
        """Files that differ between two apps, excluding their test files.

        Args:
            app1: The "before" app.
            app2: The "after" app.
            policy: Explicit refresh policy.

        Returns:
            One DiffFile per changed file, in git's order.

        Raises:
            DiffToolNotFoundError: If git is not available.
            DiffError: If git fails.
            DiffParseError: If git's output cannot be parsed.

        """
        return await self._caches.cachified(
            self._caches.get("diff-files"),
            diff_cache_key(app1, app2),
            lambda: self._compute_diff_files(app1, app2),
            policy=policy,
            policy_for=lambda entry: self.refresh_policy(app1, app2, entry),
            check_value=DIFF_FILE_LIST_ADAPTER.validate_python,
            serialize=lambda files: DIFF_FILE_LIST_ADAPTER.dump_python(files, mode="json"),
        )

    # -- diff document -------------------------------------------------------

    async def _compute_diff_code(self, app1: BaseApp, app2: BaseApp) -> str:
        if app1.name == app2.name:
            return render_same_app()
        _, output = await self._diff_apps(app1, app2)
        parsed = parse_git_diff(output)
        renderer = DiffRenderer(app1.full_path, app2.full_path, root=self.paths.root, deployed=self.config.deployed)
        app1_tests = set(app_test_files(app1))
        app2_tests = set(app_test_files(app2))

        sections: list[str] = []
        for change in parsed.files:
            rel_before = staged_path_to_relative(change.path_before)
            rel_after = staged_path_to_relative(change.path_after)
            if change.type is FileChangeType.ADDED:
                rel_before = rel_after
            elif change.type is FileChangeType.DELETED:
                rel_after = rel_before
            if rel_before in app1_tests or rel_after in app2_tests:
                continue
            sections.append(renderer.render_file(change, rel_before, rel_after))
        return render_document(sections)

    async def get_diff_code(
        self,
        app1: BaseApp,
        app2: BaseApp,
        policy: RefreshPolicy | None = None,
    ) -> str:
        """The rendered diff document for two apps.

        Raises:
            DiffToolNotFoundError: If git is not available.
            DiffError: If git fails.
            DiffParseError: If git's output cannot be parsed.

        """
        return await self._caches.cachified(
            self._caches.get("diff-code"),
            diff_cache_key(app1, app2),
            lambda: self._compute_diff_code(app1, app2),
            policy=policy,
            policy_for=lambda entry: self.refresh_policy(app1, app2, entry),
            check_value=_check_str,
        )

    # -- raw output ----------------------------------------------------------

    async def get_diff_output_with_relative_paths(self, app1: BaseApp, app2: BaseApp) -> str:
        """Raw git diff text with staging prefixes replaced by ``.``."""
        if app1.name == app2.name:
            return ""
        staged, output = await self._diff_apps(app1, app2)
        return output.replace(staged.app1_rel, ".").replace(staged.app2_rel, ".")

    async def aclose(self) -> None:
        """Wait for pending scratch-directory cleanups."""
        if self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks), return_exceptions=True)


def _check_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected cached diff document, got {type(value).__name__}")
    return value
