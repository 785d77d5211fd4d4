"""Cache backends.

Provides:
- Cache: async protocol every backend implements
- LRUCache: bounded in-memory cache
- FilesystemCache: one JSON file per key, safe against torn reads
"""

import asyncio
import contextlib
import hashlib
import json
import logging
import os
import shutil
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Protocol

from workshop_runner.core.exceptions import CacheError
from workshop_runner.core.retry import retry_with_backoff

from .entry import CacheEntry

logger = logging.getLogger(__name__)

DEFAULT_LRU_MAX_SIZE = 1000
CORRUPT_READ_RETRIES = 3
CORRUPT_READ_INITIAL_DELAY = 0.01


class Cache(Protocol):
    """Async key-value store of CacheEntry objects."""

    name: str

    async def get(self, key: str) -> CacheEntry | None: ...

    async def set(self, key: str, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def keys(self) -> list[str]: ...

    async def clear(self) -> None: ...


class LRUCache:
    """In-memory least-recently-used cache.

    Entries past ttl + swr are dropped on access, and the least recently
    used entry is evicted once max_size is exceeded.
    """

    def __init__(self, name: str, max_size: int = DEFAULT_LRU_MAX_SIZE) -> None:
        self.name = name
        self.max_size = max_size
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.metadata.is_expired(time.time()):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from cache %s", evicted, self.name)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._entries)

    async def clear(self) -> None:
        self._entries.clear()


class FilesystemCache:
    """Cache persisted as one JSON file per key.

    Files live in ``directory`` and are named by the md5 of the key; the
    content is ``{"key": ..., "entry": ...}``. Writes go to a temporary file
    that is atomically moved into place. A file that fails to parse is
    re-read a few times (another process may be replacing it) and then
    deleted and treated as a miss. Any other I/O failure raises CacheError.
    """

    def __init__(self, name: str, directory: Path) -> None:
        """Initialize the cache.

        Args:
            name: Cache name, used in logs and errors.
            directory: Directory holding this cache's files.

        """
        self.name = name
        self.directory = directory

    def _path_for(self, key: str) -> Path:
        return self.directory / hashlib.md5(key.encode("utf-8")).hexdigest()

    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        data = json.loads(raw)
        if not isinstance(data, dict) or "entry" not in data:
            raise json.JSONDecodeError("cache file is not an entry object", raw, 0)
        return data

    def _write(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()

    async def get(self, key: str) -> CacheEntry | None:
        path = self._path_for(key)
        try:
            data = await retry_with_backoff(
                lambda: asyncio.to_thread(self._read, path),
                retries=CORRUPT_READ_RETRIES,
                initial_delay=CORRUPT_READ_INITIAL_DELAY,
                retry_on=(json.JSONDecodeError, UnicodeDecodeError),
                label=f"Reading {self.name} cache entry {key}",
            )
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Deleting corrupted %s cache file %s", self.name, path)
            await self.delete(key)
            return None
        except OSError as e:
            raise CacheError(f"Failed to read cache file {path}: {e}", cache_name=self.name, key=key) from e

        if data is None:
            return None
        try:
            entry = CacheEntry.from_dict(data["entry"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Deleting malformed %s cache entry %s", self.name, key)
            await self.delete(key)
            return None
        if entry.metadata.is_expired(time.time()):
            await self.delete(key)
            return None
        return entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        path = self._path_for(key)
        try:
            payload = json.dumps({"key": key, "entry": entry.to_dict()})
        except (TypeError, ValueError) as e:
            raise CacheError(f"Value for {key} is not JSON serializable: {e}", cache_name=self.name, key=key) from e
        try:
            await asyncio.to_thread(self._write, path, payload)
        except OSError as e:
            raise CacheError(f"Failed to write cache file {path}: {e}", cache_name=self.name, key=key) from e

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to delete cache file {path}: {e}", cache_name=self.name, key=key) from e

    def _keys(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        keys: list[str] = []
        for path in sorted(self.directory.iterdir()):
            if path.suffix == ".tmp" or not path.is_file():
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue
            if isinstance(data, dict) and isinstance(data.get("key"), str):
                keys.append(data["key"])
        return keys

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys)

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, self.directory, ignore_errors=False)
        except FileNotFoundError:
            return
        except OSError as e:
            raise CacheError(f"Failed to clear cache directory {self.directory}: {e}", cache_name=self.name) from e
