"""Playground sync engine.

Provides:
- PlaygroundSync: replaces the playground with a copy of another app,
  running optional pre/post hook scripts, keeping the dev server running
  across the switch and optionally saving the previous playground.

A workshop can ship ``workshop/pre-set-playground.js`` and
``workshop/post-set-playground.js`` (in the source app or the workshop
root, the app's copy winning). Hooks run with node from the workshop root
and receive these environment variables:

- WORKSHOP_PLAYGROUND_TIMESTAMP: sync start, milliseconds since the epoch
- WORKSHOP_PLAYGROUND_SRC_DIR / WORKSHOP_PLAYGROUND_DEST_DIR
- WORKSHOP_PLAYGROUND_WAS_RUNNING: "true" / "false"
- WORKSHOP_PLAYGROUND_IS_STILL_RUNNING and
  WORKSHOP_PLAYGROUND_RESTART_PLAYGROUND (post hook only)
"""

import asyncio
import json
import logging
import os
import shutil
import time
from pathlib import Path

from workshop_runner.cache.policy import RefreshPolicy
from workshop_runner.catalog.models import PlaygroundApp
from workshop_runner.catalog.naming import PLAYGROUND_APP_NAME, app_name_from_path
from workshop_runner.catalog.service import AppCatalog
from workshop_runner.core.config import RunnerConfig
from workshop_runner.core.exceptions import CatalogError, HookError
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.playground.copy import PlaygroundCopyFilter, SyncStats, mirror_directory
from workshop_runner.playground.saved import (
    SavedPlayground,
    list_saved_playgrounds,
    resolve_saved_playground,
    save_playground,
)
from workshop_runner.processes.orchestrator import ProcessOrchestrator
from workshop_runner.watch.index import ModifiedTimeIndex

logger = logging.getLogger(__name__)

PRE_HOOK_FILENAME = "pre-set-playground.js"
POST_HOOK_FILENAME = "post-set-playground.js"
HOOK_ENV_PREFIX = "WORKSHOP_PLAYGROUND_"


def _flag(value: bool) -> str:
    return "true" if value else "false"


class PlaygroundSync:
    """Replaces the playground directory with a copy of a source app.

    Calls are serialized: a second ``set_playground`` waits for the first to
    finish instead of interleaving two copies into the same directory.
    """

    def __init__(
        self,
        config: RunnerConfig,
        paths: WorkshopPaths,
        catalog: AppCatalog,
        orchestrator: ProcessOrchestrator,
        index: ModifiedTimeIndex,
    ) -> None:
        self.config = config
        self.paths = paths
        self.catalog = catalog
        self.orchestrator = orchestrator
        self.index = index
        self._lock = asyncio.Lock()

    # -- hooks ---------------------------------------------------------------

    def find_hook(self, src_dir: Path, filename: str) -> Path | None:
        for candidate in (
            self.paths.namespace_dir(src_dir) / filename,
            self.paths.namespace_dir() / filename,
        ):
            if candidate.is_file():
                return candidate
        return None

    async def _run_hook(self, src_dir: Path, filename: str, variables: dict[str, str]) -> None:
        script = self.find_hook(src_dir, filename)
        if script is None:
            return
        env = dict(os.environ)
        env.update({HOOK_ENV_PREFIX + key: value for key, value in variables.items()})
        logger.info("Running playground hook %s", script)
        try:
            process = await asyncio.create_subprocess_exec(
                self.config.node_command,
                str(script),
                cwd=self.paths.root,
                env=env,
            )
        except OSError as e:
            raise HookError(
                f"Cannot run playground hook {script}: {e}",
                script=str(script),
            ) from e
        exit_code = await process.wait()
        if exit_code != 0:
            raise HookError(
                f"Playground hook {script} exited with code {exit_code}",
                script=str(script),
                exit_code=exit_code,
            )

    # -- identity ------------------------------------------------------------

    def _write_identity(self, app_name: str) -> None:
        info_path = self.paths.playground_info_path
        info_path.parent.mkdir(parents=True, exist_ok=True)
        info_path.write_text(json.dumps({"appName": app_name}), encoding="utf-8")

    # -- sync ----------------------------------------------------------------

    async def set_playground(
        self,
        src_dir: Path,
        *,
        reset: bool = False,
        app_name: str | None = None,
    ) -> PlaygroundApp | None:
        """Make the playground a copy of ``src_dir``.

        Args:
            src_dir: Directory of the source app.
            reset: Stop the playground's dev server and delete the playground
                before copying, instead of updating it in place.
            app_name: Identity recorded for the playground; derived from
                ``src_dir`` when None.

        Returns:
            The refreshed playground app.

        Raises:
            HookError: If a pre or post hook fails.
            CatalogError: If ``src_dir`` is not a directory.

        """
        if not src_dir.is_dir():
            raise CatalogError(f"Cannot set playground from {src_dir}: not a directory")

        async with self._lock:
            playground_dir = self.paths.playground_dir
            playground_app = await self.catalog.get_playground_app()

            if playground_app is not None and self.config.persist_playground:
                await asyncio.to_thread(save_playground, self.paths, playground_app.app_name)

            was_running = self.orchestrator.is_app_running(PLAYGROUND_APP_NAME)
            if reset:
                if was_running:
                    await self.orchestrator.close_process(PLAYGROUND_APP_NAME)
                await asyncio.to_thread(shutil.rmtree, playground_dir, True)

            timestamp = str(int(time.time() * 1000))
            hook_vars = {
                "TIMESTAMP": timestamp,
                "SRC_DIR": str(src_dir),
                "DEST_DIR": str(playground_dir),
                "WAS_RUNNING": _flag(was_running),
            }
            await self._run_hook(src_dir, PRE_HOOK_FILENAME, hook_vars)

            stats = await asyncio.to_thread(self._copy, src_dir, playground_dir)
            logger.info(
                "Playground set from %s: %d copied, %d unchanged, %d deleted",
                src_dir,
                stats.copied,
                stats.unchanged,
                stats.deleted,
            )

            identity = app_name or app_name_from_path(self.paths, src_dir)
            await asyncio.to_thread(self._write_identity, identity)

            still_running = self.orchestrator.is_app_running(PLAYGROUND_APP_NAME)
            restart = was_running and not still_running
            await self._run_hook(
                src_dir,
                POST_HOOK_FILENAME,
                {
                    **hook_vars,
                    "IS_STILL_RUNNING": _flag(still_running),
                    "RESTART_PLAYGROUND": _flag(restart),
                },
            )

            self.index.touch(playground_dir)

            refreshed = await self.catalog.get_playground_app(RefreshPolicy.force_fresh())
            target = refreshed or playground_app
            if restart and target is not None:
                logger.info("Restarting playground dev server")
                await self.orchestrator.run_app_dev(target)
                await self.orchestrator.wait_on_app(target)
            return refreshed

    def _copy(self, src_dir: Path, playground_dir: Path) -> SyncStats:
        # An in-place overwrite of a live node_modules leaves it broken
        shutil.rmtree(playground_dir / "node_modules", ignore_errors=True)
        return mirror_directory(src_dir, playground_dir, PlaygroundCopyFilter(src_dir))

    # -- saved playgrounds ---------------------------------------------------

    async def get_saved_playgrounds(self) -> list[SavedPlayground]:
        return await asyncio.to_thread(list_saved_playgrounds, self.paths)

    async def save_playground(self) -> Path | None:
        """Save the current playground regardless of the persist setting."""
        playground_app = await self.catalog.get_playground_app()
        if playground_app is None:
            return None
        return await asyncio.to_thread(save_playground, self.paths, playground_app.app_name)

    async def set_playground_from_saved(self, saved_id: str, *, reset: bool = False) -> PlaygroundApp | None:
        """Restore a saved playground.

        The playground keeps the identity of the app the saved copy was made
        from.

        Raises:
            CatalogError: If no saved playground has this id.

        """
        saved = await asyncio.to_thread(resolve_saved_playground, self.paths, saved_id)
        if saved is None:
            raise CatalogError(f"No saved playground named {saved_id!r}")
        return await self.set_playground(saved.full_path, reset=reset, app_name=saved.app_name)
