"""Read-through caching.

Provides:
- CacheEntry / CacheMetadata: cached value plus created time, ttl and swr
- LRUCache / FilesystemCache: in-memory and on-disk backends
- RefreshPolicy / RefreshPolicyResolver: explicit refresh decisions
- Cachified: read-through with stale-while-revalidate, coalescing and
  offline fallback
- ConnectivityProbe: cached online check for offline fallbacks
- CacheRegistry: the named caches of one runner plus management helpers
"""

from .backends import Cache, FilesystemCache, LRUCache
from .cachified import Cachified
from .connectivity import ConnectivityProbe
from .entry import CacheEntry, CacheMetadata
from .policy import RefreshPolicy, RefreshPolicyKind, RefreshPolicyResolver
from .registry import CacheRegistry

__all__ = [
    "Cache",
    "CacheEntry",
    "CacheMetadata",
    "CacheRegistry",
    "Cachified",
    "ConnectivityProbe",
    "FilesystemCache",
    "LRUCache",
    "RefreshPolicy",
    "RefreshPolicyKind",
    "RefreshPolicyResolver",
]
