"""Cache stores for the built ORT installation."""
from __future__ import annotations

from cache.store import CacheStore, CacheStoreError, LocalCacheStore, SignalCacheStore, cache_key

__all__ = [
    "CacheStore",
    "CacheStoreError",
    "LocalCacheStore",
    "SignalCacheStore",
    "cache_key",
]
