"""Tests for RefreshPolicy and RefreshPolicyResolver."""

from pathlib import Path

import pytest

from workshop_runner.cache import CacheEntry, CacheMetadata, RefreshPolicy, RefreshPolicyKind, RefreshPolicyResolver
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.watch import ModifiedTimeIndex


class TestRefreshPolicy:
    def test_default_allows_everything(self) -> None:
        assert RefreshPolicy.default().allows(CacheMetadata(created_time=0))

    def test_force_fresh_allows_nothing(self) -> None:
        assert not RefreshPolicy.force_fresh().allows(CacheMetadata())

    def test_max_age(self) -> None:
        policy = RefreshPolicy.with_max_age(10)
        assert policy.allows(CacheMetadata(created_time=95), now=100)
        assert not policy.allows(CacheMetadata(created_time=80), now=100)

    def test_negative_max_age_rejected(self) -> None:
        with pytest.raises(ValueError):
            RefreshPolicy.with_max_age(-1)

    def test_stronger(self) -> None:
        """Force-fresh beats max-age, which beats default; smaller max-age wins."""
        default = RefreshPolicy.default()
        assert default.stronger(RefreshPolicy.force_fresh()).is_force_fresh
        assert default.stronger(RefreshPolicy.with_max_age(5)).max_age == 5
        assert RefreshPolicy.with_max_age(5).stronger(RefreshPolicy.with_max_age(2)).max_age == 2
        assert default.stronger(default).kind is RefreshPolicyKind.DEFAULT

    @pytest.mark.parametrize(
        ("value", "key", "forced"),
        [
            (None, "apps", False),
            ("", "apps", False),
            (True, "apps", True),
            ("true", "apps", True),
            ("1", "apps", True),
            ("apps,diff", "apps", True),
            ("diff", "apps", False),
        ],
    )
    def test_from_override(self, value: bool | str | None, key: str, forced: bool) -> None:
        assert RefreshPolicy.from_override(value, key).is_force_fresh is forced


class TestRefreshPolicyResolver:
    """Policies decided from the modified-time index."""

    @pytest.fixture
    def index(self, tmp_path: Path) -> ModifiedTimeIndex:
        return ModifiedTimeIndex(WorkshopPaths(root=tmp_path, cache_dir=tmp_path / "c", scratch_dir=tmp_path / "s"))

    def _entry(self, created: float) -> CacheEntry:
        return CacheEntry("value", CacheMetadata(created_time=created))

    def test_no_entry_forces_fresh(self, index: ModifiedTimeIndex, tmp_path: Path) -> None:
        assert RefreshPolicyResolver(index).for_dirs(None, [tmp_path]).is_force_fresh

    def test_unchanged_dirs_keep_default(self, index: ModifiedTimeIndex, tmp_path: Path) -> None:
        index.touch(tmp_path / "app", 50)
        policy = RefreshPolicyResolver(index).for_dirs(self._entry(100), [tmp_path / "app"])
        assert policy.kind is RefreshPolicyKind.DEFAULT

    def test_changed_dir_forces_fresh(self, index: ModifiedTimeIndex, tmp_path: Path) -> None:
        index.touch(tmp_path / "app", 150)
        policy = RefreshPolicyResolver(index).for_dirs(self._entry(100), [tmp_path / "other", tmp_path / "app"])
        assert policy.is_force_fresh

    def test_relative_dir_rejected(self, index: ModifiedTimeIndex) -> None:
        with pytest.raises(ValueError, match="non-absolute"):
            RefreshPolicyResolver(index).for_dirs(self._entry(100), [Path("relative/app")])

    def test_any_change(self, index: ModifiedTimeIndex, tmp_path: Path) -> None:
        resolver = RefreshPolicyResolver(index)
        assert not resolver.for_any_change(self._entry(100)).is_force_fresh
        index.touch(tmp_path / "anything", 200)
        assert resolver.for_any_change(self._entry(100)).is_force_fresh
