"""Tests for recursive directory modified-time scans."""

import os
from pathlib import Path

import pytest

from workshop_runner.cache import CacheRegistry
from workshop_runner.watch import ModifiedTimeService
from workshop_runner.watch.modified_time import scan_dir_modified_time


def _set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    (root / "src").mkdir(parents=True)
    (root / "node_modules").mkdir()
    (root / ".gitignore").write_text("node_modules/\n")
    (root / "src" / "index.js").write_text("")
    (root / "node_modules" / "dep.js").write_text("")
    for path in (root / "src" / "index.js", root / "node_modules" / "dep.js", root / ".gitignore"):
        _set_mtime(path, 1_000)
    for path in (root / "src", root / "node_modules", root):
        _set_mtime(path, 1_000)
    return root


class TestScanDirModifiedTime:
    def test_latest_nested_file(self, tree: Path) -> None:
        _set_mtime(tree / "src" / "index.js", 5_000)
        assert scan_dir_modified_time(tree) == 5_000

    def test_ignored_entries_skipped(self, tree: Path) -> None:
        """Changes under git-ignored directories do not count."""
        _set_mtime(tree / "node_modules" / "dep.js", 9_000)
        assert scan_dir_modified_time(tree) == 1_000

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert scan_dir_modified_time(tmp_path / "missing") == -1


class TestModifiedTimeService:
    @pytest.fixture
    async def service(self, tmp_path: Path):
        caches = CacheRegistry(tmp_path / "cache")
        yield ModifiedTimeService(caches)
        await caches.aclose()

    async def test_get_dir_modified_time(self, service: ModifiedTimeService, tree: Path) -> None:
        assert await service.get_dir_modified_time(tree) == 1_000

    async def test_modified_more_recently_than(self, service: ModifiedTimeService, tree: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        _set_mtime(other, 3_000)
        assert await service.modified_more_recently_than(2_000, [tree, other])
        assert not await service.modified_more_recently_than(4_000, [tree, other])

    async def test_no_directories(self, service: ModifiedTimeService) -> None:
        assert not await service.modified_more_recently_than(0, [])
