"""Wiring of every runner component for one workshop.

Provides:
- WorkshopServices: builds the catalog, caches, watcher, process managers,
  playground sync and diff engine once, and owns their start/shutdown.
"""

import atexit
import logging
from dataclasses import dataclass, field

from workshop_runner.cache import CacheRegistry, ConnectivityProbe, RefreshPolicyResolver
from workshop_runner.catalog import AppCatalog
from workshop_runner.core.config import RunnerConfig, WorkshopConfig
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.diff import DiffService
from workshop_runner.playground import PlaygroundSync
from workshop_runner.processes import ColorAllocator, ConsoleForwarder, ProcessOrchestrator, SidecarManager
from workshop_runner.watch import ChangeEmitter, ModifiedTimeIndex, ModifiedTimeService, PollingWatcher

logger = logging.getLogger(__name__)


@dataclass
class WorkshopServices:
    """Every service of a running workshop.

    Build with ``create``; components hold references to each other, so a
    single instance is shared by the HTTP app and the CLI.
    """

    config: RunnerConfig
    paths: WorkshopPaths
    workshop_config: WorkshopConfig
    caches: CacheRegistry
    emitter: ChangeEmitter
    index: ModifiedTimeIndex
    watcher: PollingWatcher
    mtimes: ModifiedTimeService
    catalog: AppCatalog
    processes: ProcessOrchestrator
    sidecars: SidecarManager
    playground: PlaygroundSync
    diffs: DiffService
    _exit_hook_installed: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        config: RunnerConfig,
        *,
        forwarder: ConsoleForwarder | None = None,
        connectivity: ConnectivityProbe | None = None,
    ) -> "WorkshopServices":
        """Build all services for ``config.workshop_root``.

        Args:
            config: Runner configuration.
            forwarder: Console for child-process output.
            connectivity: Online probe, built from ``config.connectivity_url``
                when None.

        Returns:
            Wired, not yet started services.

        """
        paths = WorkshopPaths.from_config(config)
        workshop_config = WorkshopConfig.load(paths.root)
        caches = CacheRegistry(paths.cache_dir, connectivity or ConnectivityProbe(config.connectivity_url))
        emitter = ChangeEmitter()
        index = ModifiedTimeIndex(paths)
        index.attach(emitter)
        mtimes = ModifiedTimeService(caches)
        catalog = AppCatalog(paths, caches, RefreshPolicyResolver(index), mtimes, workshop_config)

        forwarder = forwarder or ConsoleForwarder()
        colors = ColorAllocator()
        processes = ProcessOrchestrator(config, colors=colors, forwarder=forwarder)
        sidecars = SidecarManager(config, colors=colors, forwarder=forwarder)

        return cls(
            config=config,
            paths=paths,
            workshop_config=workshop_config,
            caches=caches,
            emitter=emitter,
            index=index,
            watcher=PollingWatcher(paths, emitter, interval=config.watch_interval),
            mtimes=mtimes,
            catalog=catalog,
            processes=processes,
            sidecars=sidecars,
            playground=PlaygroundSync(config, paths, catalog, processes, index),
            diffs=DiffService(config, paths, caches, index, mtimes),
        )

    async def start(self) -> None:
        """Start the watcher (when enabled) and the configured sidecars."""
        if self.config.enable_watcher:
            await self.watcher.start()
        if self.workshop_config.sidecar_processes:
            await self.sidecars.start_all(self.workshop_config.sidecar_processes)
        logger.info("Workshop runner started for %s", self.paths.root)

    async def shutdown(self) -> None:
        """Stop the watcher and every child process, then close the caches."""
        await self.watcher.stop()
        if not self.config.deployed:
            await self.sidecars.stop_all()
            await self.processes.shutdown()
        await self.diffs.aclose()
        await self.caches.aclose()
        self.index.detach()
        logger.info("Workshop runner stopped")

    def kill_children(self) -> None:
        """Force-kill surviving children; safe without an event loop."""
        self.processes.kill_all_sync()
        self.sidecars.kill_all_sync()

    def install_shutdown_hook(self) -> None:
        """Kill surviving child processes when the interpreter exits."""
        if self._exit_hook_installed:
            return
        atexit.register(self.kill_children)
        self._exit_hook_installed = True
