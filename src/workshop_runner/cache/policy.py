"""Refresh policies.

A RefreshPolicy is decided once per lookup and handed to the cache, instead
of threading force-fresh booleans through every call site.

Policies:
- DEFAULT: serve cached values according to ttl/swr.
- FORCE_FRESH: ignore any cached value and recompute.
- MAX_AGE: serve cached values only if younger than max_age seconds.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from .entry import CacheEntry, CacheMetadata

if TYPE_CHECKING:
    from workshop_runner.watch.index import ModifiedTimeIndex


class RefreshPolicyKind(StrEnum):
    DEFAULT = "default"
    FORCE_FRESH = "force_fresh"
    MAX_AGE = "max_age"


@dataclass(frozen=True)
class RefreshPolicy:
    """How a cached entry may be used for one lookup."""

    kind: RefreshPolicyKind = RefreshPolicyKind.DEFAULT
    max_age: float | None = None

    @classmethod
    def default(cls) -> "RefreshPolicy":
        return cls()

    @classmethod
    def force_fresh(cls) -> "RefreshPolicy":
        return cls(RefreshPolicyKind.FORCE_FRESH)

    @classmethod
    def with_max_age(cls, seconds: float) -> "RefreshPolicy":
        if seconds < 0:
            raise ValueError(f"max_age must be >= 0, got {seconds}")
        return cls(RefreshPolicyKind.MAX_AGE, seconds)

    @classmethod
    def from_override(cls, value: bool | str | None, key: str) -> "RefreshPolicy":
        """Policy from a request-level override such as ``?fresh=``.

        Args:
            value: True forces every key; a comma separated string forces
                only the listed keys; None/False/"" means default.
            key: Cache key being looked up.

        Returns:
            FORCE_FRESH when the override targets ``key``, else DEFAULT.

        """
        if value is True:
            return cls.force_fresh()
        if isinstance(value, str) and value:
            if value.lower() in ("true", "1"):
                return cls.force_fresh()
            if key in {part.strip() for part in value.split(",")}:
                return cls.force_fresh()
        return cls.default()

    @property
    def is_force_fresh(self) -> bool:
        return self.kind is RefreshPolicyKind.FORCE_FRESH

    def allows(self, metadata: CacheMetadata, now: float | None = None) -> bool:
        """Whether a cached entry with ``metadata`` may be served."""
        if self.kind is RefreshPolicyKind.FORCE_FRESH:
            return False
        if self.kind is RefreshPolicyKind.MAX_AGE and self.max_age is not None:
            now = time.time() if now is None else now
            return now - metadata.created_time <= self.max_age
        return True

    def stronger(self, other: "RefreshPolicy") -> "RefreshPolicy":
        """Combine two policies, keeping the stricter one."""
        if self.is_force_fresh or other.is_force_fresh:
            return RefreshPolicy.force_fresh()
        ages = [p.max_age for p in (self, other) if p.kind is RefreshPolicyKind.MAX_AGE and p.max_age is not None]
        if ages:
            return RefreshPolicy.with_max_age(min(ages))
        return RefreshPolicy.default()


class RefreshPolicyResolver:
    """Decides refresh policies from the modified-time index.

    An entry must be recomputed when any directory it depends on changed
    after the entry was created.
    """

    def __init__(self, index: "ModifiedTimeIndex") -> None:
        self._index = index

    def for_dirs(self, entry: CacheEntry | None, dirs: Iterable[Path]) -> RefreshPolicy:
        """Policy for an entry depending on ``dirs``.

        Args:
            entry: Currently cached entry, if any.
            dirs: Absolute directories the entry was computed from.

        Returns:
            FORCE_FRESH when there is no entry or a directory changed after
            the entry's creation, DEFAULT otherwise.

        Raises:
            ValueError: If a directory is not absolute.

        """
        dirs = list(dirs)
        for directory in dirs:
            if not directory.is_absolute():
                raise ValueError(f"Trying to get modified time for a non-absolute path: {directory}")
        if entry is None:
            return RefreshPolicy.force_fresh()
        latest = self._index.latest(dirs)
        if latest is not None and latest > entry.metadata.created_time:
            return RefreshPolicy.force_fresh()
        return RefreshPolicy.default()

    def for_any_change(self, entry: CacheEntry | None) -> RefreshPolicy:
        """Policy for an entry depending on every tracked directory."""
        if entry is None:
            return RefreshPolicy.force_fresh()
        latest = self._index.latest_overall()
        if latest is not None and latest > entry.metadata.created_time:
            return RefreshPolicy.force_fresh()
        return RefreshPolicy.default()
