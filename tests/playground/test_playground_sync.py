"""Tests for PlaygroundSync against the on-disk test workshop."""

import json
import os
import sys
from pathlib import Path
from typing import Any

import pytest

from workshop_runner.catalog import BrowserTestInfo
from workshop_runner.core.exceptions import CatalogError, HookError
from workshop_runner.playground import PlaygroundSync
from workshop_runner.services import WorkshopServices

ENV_DUMP_HOOK = """\
import json, os, pathlib, sys
variables = {k: v for k, v in os.environ.items() if k.startswith("WORKSHOP_PLAYGROUND_")}
pathlib.Path(sys.argv[0]).with_suffix(".json").write_text(json.dumps(variables))
"""


@pytest.fixture
def config_overrides() -> dict[str, Any]:
    return {"node_command": sys.executable}


def _problem_dir(services: WorkshopServices) -> Path:
    return services.paths.exercises_dir / "01.basics" / "01.problem.hello"


def _solution_dir(services: WorkshopServices) -> Path:
    return services.paths.exercises_dir / "01.basics" / "01.solution.hello"


class TestSetPlayground:
    async def test_copies_and_records_identity(self, services: WorkshopServices) -> None:
        app = await services.playground.set_playground(_problem_dir(services))
        playground_dir = services.paths.playground_dir
        assert (playground_dir / "index.js").read_text() == "console.log('hello')\n"
        assert app is not None
        assert app.app_name == "01.01.problem"
        assert app.is_up_to_date
        assert json.loads(services.paths.playground_info_path.read_text()) == {"appName": "01.01.problem"}

    async def test_playground_joins_catalog(self, services: WorkshopServices) -> None:
        await services.catalog.get_apps()
        await services.playground.set_playground(_problem_dir(services))
        apps = await services.catalog.get_apps()
        assert apps[-1].name == "playground"

    async def test_problem_playground_uses_solution_tests(self, services: WorkshopServices) -> None:
        app = await services.playground.set_playground(_problem_dir(services))
        assert app is not None
        assert isinstance(app.test, BrowserTestInfo)
        assert app.test.test_files == ["hello.test.js"]

    async def test_switching_apps_updates_in_place(self, services: WorkshopServices) -> None:
        """Identical files keep their mtime, changed files are rewritten."""
        playground_dir = services.paths.playground_dir
        await services.playground.set_playground(_problem_dir(services))
        os.utime(playground_dir / "README.mdx", (1_000, 1_000))
        (playground_dir / "notes.txt").write_text("scratch\n")

        app = await services.playground.set_playground(_solution_dir(services))
        assert app is not None and app.app_name == "01.01.solution"
        assert (playground_dir / "README.mdx").stat().st_mtime == 1_000
        assert (playground_dir / "index.js").read_text() == "console.log('hello, world')\n"
        assert (playground_dir / "hello.test.js").exists()
        assert not (playground_dir / "notes.txt").exists()

    async def test_build_output_kept_unless_reset(self, services: WorkshopServices) -> None:
        src = _problem_dir(services)
        (src / "build").mkdir()
        playground_dir = services.paths.playground_dir
        await services.playground.set_playground(src)
        (playground_dir / "build").mkdir(exist_ok=True)
        (playground_dir / "build" / "out.js").write_text("built\n")

        await services.playground.set_playground(src)
        assert (playground_dir / "build" / "out.js").exists()

        await services.playground.set_playground(src, reset=True)
        assert not (playground_dir / "build" / "out.js").exists()
        assert (playground_dir / "index.js").exists()

    async def test_ignored_env_and_dependencies_copied(self, services: WorkshopServices) -> None:
        src = _problem_dir(services)
        (src / ".gitignore").write_text("node_modules\n.env\nnotes.log\n")
        (src / ".env").write_text("KEY=1\n")
        (src / "notes.log").write_text("log\n")
        (src / "node_modules" / "dep").mkdir(parents=True)
        (src / "node_modules" / "dep" / "index.js").write_text("dep\n")

        await services.playground.set_playground(src)
        playground_dir = services.paths.playground_dir
        assert (playground_dir / ".env").exists()
        assert (playground_dir / "node_modules" / "dep" / "index.js").exists()
        assert not (playground_dir / "notes.log").exists()

    async def test_missing_source(self, services: WorkshopServices) -> None:
        with pytest.raises(CatalogError, match="not a directory"):
            await services.playground.set_playground(services.paths.root / "nowhere")


class TestHooks:
    """Pre and post hooks run from the workshop root."""

    async def test_hook_environment(self, services: WorkshopServices) -> None:
        namespace = services.paths.namespace_dir()
        namespace.mkdir()
        (namespace / "pre-set-playground.js").write_text(ENV_DUMP_HOOK)
        (namespace / "post-set-playground.js").write_text(ENV_DUMP_HOOK)

        await services.playground.set_playground(_problem_dir(services))
        pre = json.loads((namespace / "pre-set-playground.json").read_text())
        post = json.loads((namespace / "post-set-playground.json").read_text())
        assert pre["WORKSHOP_PLAYGROUND_SRC_DIR"] == str(_problem_dir(services))
        assert pre["WORKSHOP_PLAYGROUND_DEST_DIR"] == str(services.paths.playground_dir)
        assert pre["WORKSHOP_PLAYGROUND_WAS_RUNNING"] == "false"
        assert "WORKSHOP_PLAYGROUND_IS_STILL_RUNNING" not in pre
        assert post["WORKSHOP_PLAYGROUND_TIMESTAMP"] == pre["WORKSHOP_PLAYGROUND_TIMESTAMP"]
        assert post["WORKSHOP_PLAYGROUND_RESTART_PLAYGROUND"] == "false"

    async def test_app_hook_wins(self, services: WorkshopServices) -> None:
        src = _problem_dir(services)
        services.paths.namespace_dir().mkdir()
        services.paths.namespace_dir(src).mkdir()
        (services.paths.namespace_dir() / "pre-set-playground.js").write_text("raise SystemExit(9)\n")
        app_hook = services.paths.namespace_dir(src) / "pre-set-playground.js"
        app_hook.write_text(ENV_DUMP_HOOK)

        assert services.playground.find_hook(src, "pre-set-playground.js") == app_hook
        await services.playground.set_playground(src)
        assert app_hook.with_suffix(".json").exists()

    async def test_failing_hook(self, services: WorkshopServices) -> None:
        namespace = services.paths.namespace_dir()
        namespace.mkdir()
        (namespace / "pre-set-playground.js").write_text("raise SystemExit(4)\n")
        with pytest.raises(HookError) as exc_info:
            await services.playground.set_playground(_problem_dir(services))
        assert exc_info.value.exit_code == 4
        assert not services.paths.playground_dir.exists()


class TestSavedPlaygrounds:
    @pytest.fixture
    def persisting(self, services: WorkshopServices) -> PlaygroundSync:
        return PlaygroundSync(
            services.config.model_copy(update={"persist_playground": True}),
            services.paths,
            services.catalog,
            services.processes,
            services.index,
        )

    async def test_previous_playground_saved(self, persisting: PlaygroundSync, services: WorkshopServices) -> None:
        await persisting.set_playground(_problem_dir(services))
        assert await persisting.get_saved_playgrounds() == []

        await persisting.set_playground(_solution_dir(services))
        saved = await persisting.get_saved_playgrounds()
        assert [s.app_name for s in saved] == ["01.01.problem"]
        assert (saved[0].full_path / "index.js").read_text() == "console.log('hello')\n"

    async def test_restore_saved(self, services: WorkshopServices) -> None:
        await services.playground.set_playground(_problem_dir(services))
        saved_path = await services.playground.save_playground()
        assert saved_path is not None
        await services.playground.set_playground(_solution_dir(services))

        app = await services.playground.set_playground_from_saved(saved_path.name)
        assert app is not None and app.app_name == "01.01.problem"
        assert (services.paths.playground_dir / "index.js").read_text() == "console.log('hello')\n"

    async def test_save_without_playground(self, services: WorkshopServices) -> None:
        assert await services.playground.save_playground() is None

    async def test_unknown_saved_id(self, services: WorkshopServices) -> None:
        with pytest.raises(CatalogError, match="No saved playground"):
            await services.playground.set_playground_from_saved("missing")
