"""Online/offline detection for caches with an offline fallback."""

import logging
import time

import httpx

from .backends import LRUCache
from .entry import CacheEntry, CacheMetadata

logger = logging.getLogger(__name__)

DEFAULT_CONNECTIVITY_URL = "https://www.cloudflare.com"
DEFAULT_CONNECTIVITY_TTL = 10.0
DEFAULT_CONNECTIVITY_TIMEOUT = 3.0
_CACHE_KEY = "connected"


class ConnectivityProbe:
    """HEAD request against a well-known URL, cached for a short time.

    Attributes:
        url: URL probed.
        ttl: Seconds a probe result is reused.

    """

    def __init__(
        self,
        url: str = DEFAULT_CONNECTIVITY_URL,
        ttl: float = DEFAULT_CONNECTIVITY_TTL,
        timeout: float = DEFAULT_CONNECTIVITY_TIMEOUT,
    ) -> None:
        self.url = url
        self.ttl = ttl
        self.timeout = timeout
        self._cache = LRUCache("connectivity", max_size=1)

    async def check(self) -> bool:
        """Probe the URL now, bypassing the cache."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.head(self.url)
        except httpx.HTTPError as e:
            logger.debug("Connectivity probe to %s failed: %s", self.url, e)
            return False
        return response.is_success

    async def is_online(self) -> bool:
        """Cached probe result."""
        entry = await self._cache.get(_CACHE_KEY)
        if entry is not None and entry.metadata.is_fresh(time.time()):
            return bool(entry.value)
        online = await self.check()
        await self._cache.set(_CACHE_KEY, CacheEntry(online, CacheMetadata(ttl=self.ttl)))
        if not online:
            logger.info("No network connection detected (probe: %s)", self.url)
        return online
