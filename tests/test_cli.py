"""Tests for the workshop-runner command line."""

import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from workshop_runner.cli import app
from workshop_runner.cli_utils import EXIT_CONFIG_ERROR, EXIT_ERROR

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path) -> dict[str, str]:
    """Keep caches under tmp_path and the watcher off."""
    return {
        "WORKSHOP_RUNNER_CACHE_DIR": str(tmp_path / "cache"),
        "WORKSHOP_RUNNER_ENABLE_WATCHER": "false",
        "COLUMNS": "200",
    }


def _invoke(workshop_root: Path, env: dict[str, str], *args: str):
    return runner.invoke(app, [*args, "--workshop", str(workshop_root)], env=env)


class TestAppsCommands:
    def test_apps(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "apps")
        assert result.exit_code == 0, result.output
        assert "01.01.problem" in result.output
        assert "02.01.solution" in result.output
        assert "example.counter" in result.output

    def test_apps_fresh(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "apps", "--fresh")
        assert result.exit_code == 0, result.output

    def test_exercises(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "exercises")
        assert result.exit_code == 0, result.output
        assert "step 1: 01.01.problem → 01.01.solution" in result.output
        assert "step 2: 01.02.problem → 01.02.solution" in result.output

    def test_exercises_empty_workshop(self, tmp_path: Path, cli_env: dict[str, str]) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        result = _invoke(empty, cli_env, "exercises")
        assert result.exit_code == 0
        assert "No exercises found" in result.output


class TestDiffCommand:
    @pytest.mark.requires_git
    @pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
    def test_files(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "diff", "01.01.problem", "01.01.solution")
        assert result.exit_code == 0, result.output
        assert "index.js" in result.output
        assert "modified" in result.output

    @pytest.mark.requires_git
    @pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
    def test_raw(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "diff", "01.01.problem", "01.01.solution", "--raw")
        assert result.exit_code == 0, result.output
        assert "diff --git ./index.js ./index.js" in result.output

    def test_same_app(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "diff", "01.01.problem", "01.01.problem")
        assert result.exit_code == 0
        assert "No changes" in result.output

    def test_unknown_app(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "diff", "01.01.problem", "nope")
        assert result.exit_code == EXIT_ERROR
        assert "No app named nope" in result.output


class TestPlaygroundCommand:
    def test_set(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "playground", "01.01.solution")
        assert result.exit_code == 0, result.output
        assert "Playground set from 01.01.solution" in result.output
        assert (workshop_root / "playground" / "hello.test.js").exists()


class TestCacheClearCommand:
    def test_clear_all(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        _invoke(workshop_root, cli_env, "apps")
        result = _invoke(workshop_root, cli_env, "cache-clear")
        assert result.exit_code == 0, result.output
        assert "Cleared" in result.output
        assert "apps" in result.output

    def test_unknown_cache(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "cache-clear", "--name", "nope")
        assert result.exit_code == EXIT_ERROR
        assert "Unknown cache: nope" in result.output


class TestConfigErrors:
    def test_missing_workshop(self, tmp_path: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(tmp_path / "missing", cli_env, "apps")
        assert result.exit_code == EXIT_ERROR
        assert "does not exist" in result.output

    def test_missing_config_file(self, workshop_root: Path, tmp_path: Path, cli_env: dict[str, str]) -> None:
        result = _invoke(workshop_root, cli_env, "apps", "--config", str(tmp_path / "nope.yaml"))
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Config file not found" in result.output

    def test_invalid_config_value(self, workshop_root: Path, cli_env: dict[str, str]) -> None:
        (workshop_root / ".workshop-runner.yaml").write_text("watch_interval: not-a-number\n")
        result = _invoke(workshop_root, cli_env, "apps")
        assert result.exit_code == EXIT_CONFIG_ERROR
