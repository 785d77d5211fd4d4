"""Tests for WorkshopServices wiring and lifecycle."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from workshop_runner.core.config import RunnerConfig
from workshop_runner.services import WorkshopServices


class TestCreate:
    async def test_components_share_state(self, services: WorkshopServices) -> None:
        assert services.paths.root == services.config.workshop_root
        assert services.workshop_config.title == "React Fundamentals"
        assert services.playground.catalog is services.catalog
        assert not services.watcher.is_running

    async def test_watcher_events_reach_index(self, services: WorkshopServices, workshop_root: Path) -> None:
        app_dir = workshop_root / "exercises" / "01.basics" / "01.problem.hello"
        assert services.emitter.subscriber_count >= 1
        await services.watcher.poll()
        (app_dir / "package.json").write_text("{}")
        await services.watcher.poll()
        assert services.index.get(app_dir) is not None


class TestLifecycle:
    async def test_start_with_watcher(self, runner_config: RunnerConfig) -> None:
        services = WorkshopServices.create(
            runner_config.model_copy(update={"enable_watcher": True, "watch_interval": 0.05})
        )
        await services.start()
        assert services.watcher.is_running
        await services.shutdown()
        assert not services.watcher.is_running

    async def test_sidecars_from_workshop_manifest(self, runner_config: RunnerConfig, workshop_root: Path) -> None:
        manifest = json.loads((workshop_root / "package.json").read_text())
        sleeper = f'"{sys.executable}" -c "import time; time.sleep(60)"'
        manifest["workshop"]["sidecarProcesses"] = {"db": sleeper}
        (workshop_root / "package.json").write_text(json.dumps(manifest))

        services = WorkshopServices.create(runner_config)
        await services.start()
        try:
            assert services.sidecars.is_running("db")
        finally:
            await services.shutdown()
        assert not services.sidecars.is_running("db")

    async def test_shutdown_hook_installed_once(
        self, services: WorkshopServices, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        register = MagicMock()
        monkeypatch.setattr("workshop_runner.services.atexit.register", register)
        services.install_shutdown_hook()
        services.install_shutdown_hook()
        register.assert_called_once_with(services.kill_children)

    async def test_kill_children_without_processes(self, services: WorkshopServices) -> None:
        services.kill_children()
