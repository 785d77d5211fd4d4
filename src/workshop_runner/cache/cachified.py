"""Read-through caching with stale-while-revalidate.

Lookup rules, given the entry currently stored under a key:

- no entry, expired entry, or a policy that rejects it: recompute, store,
  return the fresh value;
- entry within ttl: return it;
- entry past ttl but within swr: return it and refresh in the background.

Recomputations for the same (cache, key) pair are coalesced: callers that
arrive while one is running await the same task.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from workshop_runner.core.async_utils import spawn_background

from .backends import Cache
from .connectivity import ConnectivityProbe
from .entry import CacheEntry, CacheMetadata
from .policy import RefreshPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()

FreshValueFn = Callable[[], Awaitable[T]]
PolicyFn = Callable[[CacheEntry | None], RefreshPolicy | Awaitable[RefreshPolicy]]


class Cachified:
    """Read-through cache front shared by all runner caches.

    Attributes:
        connectivity: Probe consulted for lookups with an offline fallback.

    """

    def __init__(self, connectivity: ConnectivityProbe | None = None) -> None:
        self.connectivity = connectivity
        self._pending: dict[tuple[str, str], asyncio.Task[Any]] = {}
        self._background: set[asyncio.Task[Any]] = set()

    async def __call__(
        self,
        cache: Cache,
        key: str,
        get_fresh_value: FreshValueFn[T],
        *,
        ttl: float | None = None,
        swr: float = 0.0,
        policy: RefreshPolicy | None = None,
        policy_for: PolicyFn | None = None,
        check_value: Callable[[Any], T] | None = None,
        serialize: Callable[[T], Any] | None = None,
        offline_fallback_value: Any = _MISSING,
    ) -> T:
        """Return the cached value for ``key`` or compute it.

        Args:
            cache: Backend to read from and write to.
            key: Cache key.
            get_fresh_value: Coroutine factory producing a fresh value.
            ttl: Seconds a value stays fresh. None means forever.
            swr: Seconds a stale value may still be served.
            policy: Explicit refresh policy (e.g. a request override).
            policy_for: Computes a policy from the current entry; combined
                with ``policy``, the stricter one wins.
            check_value: Validates and converts a stored value; raising
                marks a cached value invalid and a fresh value an error.
            serialize: Converts a fresh value into its stored form.
            offline_fallback_value: Returned when offline and nothing is
                cached, or when the fresh computation fails with a network
                error.

        Returns:
            The cached or fresh value.

        """
        entry = await cache.get(key)
        resolved = policy or RefreshPolicy.default()
        if policy_for is not None:
            computed = policy_for(entry)
            if inspect.isawaitable(computed):
                computed = await computed
            resolved = resolved.stronger(computed)

        cached_value: Any = _MISSING
        if entry is not None:
            cached_value = self._checked(cache, key, entry.value, check_value)
            if cached_value is _MISSING:
                await cache.delete(key)
                entry = None

        has_fallback = offline_fallback_value is not _MISSING
        if has_fallback and self.connectivity is not None and not await self.connectivity.is_online():
            logger.debug("%s: offline, serving %s", cache.name, "cached value" if entry else "fallback")
            return cached_value if entry is not None else offline_fallback_value

        now = time.time()
        if entry is not None and resolved.allows(entry.metadata, now):
            if entry.metadata.is_fresh(now):
                logger.debug("%s: hit %s", cache.name, key)
                return cached_value
            logger.debug("%s: stale %s, refreshing in background", cache.name, key)
            if (cache.name, key) not in self._pending:
                spawn_background(
                    self._refresh(cache, key, get_fresh_value, ttl, swr, check_value, serialize),
                    self._background,
                    name=f"cache-refresh:{cache.name}:{key}",
                )
            return cached_value

        logger.debug("%s: miss %s (policy=%s)", cache.name, key, resolved.kind)
        try:
            return await self._refresh(cache, key, get_fresh_value, ttl, swr, check_value, serialize)
        except httpx.TransportError as e:
            if has_fallback:
                logger.warning("%s: network error for %s, using fallback: %s", cache.name, key, e)
                return cached_value if entry is not None else offline_fallback_value
            raise
        except Exception as e:
            if entry is not None and resolved.is_force_fresh:
                logger.warning("%s: refresh of %s failed, serving cached value: %s", cache.name, key, e)
                return cached_value
            raise

    def _checked(self, cache: Cache, key: str, value: Any, check_value: Callable[[Any], Any] | None) -> Any:
        if check_value is None:
            return value
        try:
            return check_value(value)
        except Exception as e:
            logger.info("%s: cached value for %s failed validation, discarding: %s", cache.name, key, e)
            return _MISSING

    async def _refresh(
        self,
        cache: Cache,
        key: str,
        get_fresh_value: FreshValueFn[T],
        ttl: float | None,
        swr: float,
        check_value: Callable[[Any], T] | None,
        serialize: Callable[[T], Any] | None,
    ) -> T:
        pending_key = (cache.name, key)
        task = self._pending.get(pending_key)
        if task is None:
            task = asyncio.create_task(
                self._compute(cache, key, get_fresh_value, ttl, swr, check_value, serialize),
                name=f"cache-compute:{cache.name}:{key}",
            )
            self._pending[pending_key] = task
            task.add_done_callback(lambda _t: self._pending.pop(pending_key, None))
        else:
            logger.debug("%s: joining in-flight computation of %s", cache.name, key)
        return await asyncio.shield(task)

    async def _compute(
        self,
        cache: Cache,
        key: str,
        get_fresh_value: FreshValueFn[T],
        ttl: float | None,
        swr: float,
        check_value: Callable[[Any], T] | None,
        serialize: Callable[[T], Any] | None,
    ) -> T:
        started = time.perf_counter()
        value = await get_fresh_value()
        stored = serialize(value) if serialize is not None else value
        if check_value is not None:
            check_value(stored)
        await cache.set(key, CacheEntry(stored, CacheMetadata(created_time=time.time(), ttl=ttl, swr=swr)))
        logger.debug("%s: computed %s in %.1fms", cache.name, key, (time.perf_counter() - started) * 1000)
        return value

    async def aclose(self) -> None:
        """Cancel background refreshes."""
        tasks = list(self._background) + list(self._pending.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
