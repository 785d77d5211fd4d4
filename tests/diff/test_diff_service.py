"""Tests for DiffService against real ``git diff --no-index`` runs."""

import asyncio
import os
import shutil
import time
from typing import Any

import pytest

from workshop_runner.core.exceptions import DiffError, DiffToolNotFoundError
from workshop_runner.diff import DiffFile, DiffService, DiffStatus
from workshop_runner.diff.render import SAME_APP_MESSAGE
from workshop_runner.diff.service import diff_cache_key
from workshop_runner.services import WorkshopServices
from workshop_runner.watch.modified_time import DIR_MODIFIED_TIME_TTL

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


async def _pair(services: WorkshopServices, first: str, second: str):
    return await services.catalog.require_app(first), await services.catalog.require_app(second)


@pytest.mark.requires_git
@needs_git
class TestDiffFiles:
    async def test_changed_files_without_tests(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        files = await services.diffs.get_diff_files(problem, solution)
        assert files == [DiffFile(status=DiffStatus.MODIFIED, path="index.js", line=1)]

    async def test_reverse_direction(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "02.01.problem", "02.01.solution")
        (solution.full_path / "extra.js").write_text("export {}\n")
        files = await services.diffs.get_diff_files(problem, solution)
        assert DiffFile(status=DiffStatus.ADDED, path="extra.js", line=1) in files

        reverse = await services.diffs.get_diff_files(solution, problem)
        assert DiffFile(status=DiffStatus.DELETED, path="extra.js", line=1) in reverse

    async def test_same_app(self, services: WorkshopServices) -> None:
        problem, _ = await _pair(services, "01.01.problem", "01.01.solution")
        assert await services.diffs.get_diff_files(problem, problem) == []

    async def test_scratch_copies_removed(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        await services.diffs.get_diff_files(problem, solution)
        await services.diffs.aclose()
        assert not any((services.paths.diff_dir / problem.name).glob("*"))


@pytest.mark.requires_git
@needs_git
class TestDiffCaching:
    """Results are cached until either app changes."""

    @pytest.fixture
    def git_calls(self, services: WorkshopServices, monkeypatch: pytest.MonkeyPatch) -> list[str]:
        calls: list[str] = []
        original = services.diffs.run_diff

        async def counting(staged):
            calls.append(staged.app1_rel)
            return await original(staged)

        monkeypatch.setattr(services.diffs, "run_diff", counting)
        return calls

    async def test_cached_until_files_change(self, services: WorkshopServices, git_calls: list[str]) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        first = await services.diffs.get_diff_files(problem, solution)
        assert await services.diffs.get_diff_files(problem, solution) == first
        assert len(git_calls) == 1

        index_js = solution.full_path / "index.js"
        index_js.write_text("console.log('hello')\n")
        future = time.time() + 10
        os.utime(index_js, (future, future))
        await asyncio.sleep(DIR_MODIFIED_TIME_TTL + 0.1)
        assert await services.diffs.get_diff_files(problem, solution) == []
        assert len(git_calls) == 2

    async def test_watcher_time_invalidates(self, services: WorkshopServices, git_calls: list[str]) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        await services.diffs.get_diff_files(problem, solution)
        services.index.touch(problem.full_path, time.time() + 10)
        await services.diffs.get_diff_files(problem, solution)
        assert len(git_calls) == 2

    async def test_cache_key(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        assert diff_cache_key(problem, solution) == (
            "exercises/01.basics/01.problem.hello__vs__exercises/01.basics/01.solution.hello"
        )


@pytest.mark.requires_git
@needs_git
class TestDiffCode:
    async def test_document(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        document = await services.diffs.get_diff_code(problem, solution)
        assert '<Accordion title="index.js" variant="changed">' in document
        assert "console.log('hello, world')" in document
        assert "hello.test.js" not in document
        assert "README" not in document

    async def test_no_changes(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "02.01.problem", "02.01.solution")
        (solution.full_path / "server.js").write_text("// 01.problem\n")
        document = await services.diffs.get_diff_code(problem, solution)
        assert "No changes" in document
        assert "<Accordion" not in document

    async def test_same_app(self, services: WorkshopServices) -> None:
        problem, _ = await _pair(services, "01.01.problem", "01.01.solution")
        assert SAME_APP_MESSAGE in await services.diffs.get_diff_code(problem, problem)


@pytest.mark.requires_git
@needs_git
class TestRawOutput:
    async def test_relative_paths(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        output = await services.diffs.get_diff_output_with_relative_paths(problem, solution)
        assert "diff --git ./index.js ./index.js" in output
        assert "-console.log('hello')" in output
        assert "+console.log('hello, world')" in output
        assert problem.name not in output

    async def test_same_app(self, services: WorkshopServices) -> None:
        problem, _ = await _pair(services, "01.01.problem", "01.01.solution")
        assert await services.diffs.get_diff_output_with_relative_paths(problem, problem) == ""


class TestGitFailures:
    @pytest.fixture
    def config_overrides(self) -> dict[str, Any]:
        return {"git_command": "definitely-not-a-git-binary"}

    async def test_missing_git(self, services: WorkshopServices) -> None:
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        with pytest.raises(DiffToolNotFoundError) as exc_info:
            await services.diffs.get_diff_files(problem, solution)
        assert exc_info.value.command == "definitely-not-a-git-binary"

    @pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell script")
    async def test_git_error_exit(self, services: WorkshopServices, tmp_path) -> None:
        fake_git = tmp_path / "fake-git"
        fake_git.write_text("#!/bin/sh\necho 'fatal: broken' >&2\nexit 128\n")
        fake_git.chmod(0o755)
        diffs = DiffService(
            services.config.model_copy(update={"git_command": str(fake_git)}),
            services.paths,
            services.caches,
            services.index,
            services.mtimes,
        )
        problem, solution = await _pair(services, "01.01.problem", "01.01.solution")
        with pytest.raises(DiffError, match="fatal: broken"):
            await diffs.get_diff_code(problem, solution)
        await diffs.aclose()
