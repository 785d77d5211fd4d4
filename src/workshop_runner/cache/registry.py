"""Named caches of one runner instance.

Provides:
- CacheRegistry: creates the caches every component uses and the management
  operations (list, delete entry, clear) exposed by the API and CLI.
"""

import logging
from pathlib import Path
from typing import Any

from .backends import Cache, FilesystemCache, LRUCache
from .cachified import Cachified
from .connectivity import ConnectivityProbe

logger = logging.getLogger(__name__)

# Caches persisted under <cache dir>/<instance id>/<name>
FILESYSTEM_CACHES = (
    "solution-app",
    "problem-app",
    "playground-app",
    "diff-files",
    "diff-code",
)
# Caches that only live for the process lifetime
MEMORY_CACHES = (
    "apps",
    "directory-empty",
    "dir-modified-time",
)


class CacheRegistry:
    """Owns every cache and the shared Cachified front.

    Attributes:
        cache_dir: Directory holding the filesystem caches.
        cachified: Read-through front shared by all components.

    """

    def __init__(self, cache_dir: Path, connectivity: ConnectivityProbe | None = None) -> None:
        """Initialize the registry.

        Args:
            cache_dir: Instance-specific cache directory.
            connectivity: Probe for lookups with an offline fallback.

        """
        self.cache_dir = cache_dir
        self.cachified = Cachified(connectivity)
        self._caches: dict[str, Cache] = {}
        for name in FILESYSTEM_CACHES:
            self._caches[name] = FilesystemCache(name, cache_dir / name)
        for name in MEMORY_CACHES:
            self._caches[name] = LRUCache(name)

    def get(self, name: str) -> Cache:
        """Get a cache by name.

        Raises:
            KeyError: If no cache with that name exists.

        """
        try:
            return self._caches[name]
        except KeyError:
            raise KeyError(f"Unknown cache: {name}") from None

    def names(self) -> list[str]:
        return list(self._caches)

    async def list_caches(self) -> dict[str, list[str]]:
        """Keys stored in every cache."""
        return {name: await cache.keys() for name, cache in self._caches.items()}

    async def delete_entry(self, name: str, key: str) -> None:
        await self.get(name).delete(key)
        logger.info("Deleted %s from cache %s", key, name)

    async def update_entry(self, name: str, key: str, value: Any) -> bool:
        """Replace the value of an existing entry, keeping its metadata.

        Returns:
            False when the entry does not exist.

        """
        cache = self.get(name)
        entry = await cache.get(key)
        if entry is None:
            return False
        await cache.set(key, type(entry)(value, entry.metadata))
        return True

    async def clear(self, name: str) -> None:
        await self.get(name).clear()
        logger.info("Cleared cache %s", name)

    async def clear_all(self) -> None:
        for cache in self._caches.values():
            await cache.clear()
        logger.info("Cleared all caches in %s", self.cache_dir)

    async def aclose(self) -> None:
        await self.cachified.aclose()
