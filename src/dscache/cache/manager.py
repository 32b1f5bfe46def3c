"""Multi-store cache manager.

Reads walk the stores in configured order and return the first hit.
Writes go to every selected store concurrently, each store resolving the
TTL with its own name.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from dscache.cache.ttl import TTL, FixedTTL
from dscache.observability.metrics import record_cache_operation

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Interface implemented by MemoryStore and RedisStore."""

    name: str

    async def get(self, key: str) -> Any: ...

    async def mget(self, keys: Sequence[str]) -> list[Any]: ...

    async def set(self, key: str, value: Any, ttl: int) -> None: ...

    async def mset(self, items: Sequence[tuple[str, Any]], ttl: int) -> None: ...

    async def delete(self, keys: Sequence[str]) -> int: ...

    async def close(self) -> None: ...


class CacheManager:
    """Get/set/mget/mset/delete across an ordered list of stores."""

    def __init__(self, stores: Sequence[CacheStore]):
        if not stores:
            raise ValueError("CacheManager needs at least one store")
        self.stores = list(stores)

    @property
    def store_names(self) -> list[str]:
        return [store.name for store in self.stores]

    def has_store(self, name: str) -> bool:
        return any(store.name == name for store in self.stores)

    def store(self, name: str) -> CacheStore:
        for store in self.stores:
            if store.name == name:
                return store
        raise KeyError(f"No cache store named '{name}'")

    def _select(self, names: Iterable[str] | None) -> list[CacheStore]:
        if names is None:
            return self.stores
        wanted = set(names)
        return [store for store in self.stores if store.name in wanted]

    async def _timed(self, operation: str, store: CacheStore, awaitable: Any) -> Any:
        start = time.perf_counter()
        try:
            return await awaitable
        finally:
            record_cache_operation(operation, time.perf_counter() - start, store.name)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        """Return the first cached value for ``key``, or None."""
        for store in self.stores:
            value = await self._timed("get", store, store.get(key))
            if value is not None:
                return value
        return None

    async def mget(self, *keys: str) -> list[Any]:
        """Return cached values aligned with ``keys`` (None for misses)."""
        results: list[Any] = [None] * len(keys)
        pending = list(range(len(keys)))

        for store in self.stores:
            if not pending:
                break
            values = await self._timed("mget", store, store.mget([keys[i] for i in pending]))
            still_pending = []
            for index, value in zip(pending, values):
                if value is None:
                    still_pending.append(index)
                else:
                    results[index] = value
            pending = still_pending

        return results

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def set(
        self,
        key: str,
        value: Any,
        ttl: TTL | None = None,
        stores: Iterable[str] | None = None,
    ) -> Any:
        """Write ``value`` to the selected stores and return it."""
        ttl = ttl or FixedTTL(0)
        writes = []
        for store in self._select(stores):
            seconds = ttl.for_store(store.name)
            if seconds < 0:
                logger.debug(f"Skipping {store.name} write for {key}: caching disabled")
                continue
            writes.append(self._timed("set", store, store.set(key, value, seconds)))
        await asyncio.gather(*writes)
        return value

    async def mset(
        self,
        items: Sequence[tuple[str, Any]],
        ttl: TTL | None = None,
        stores: Iterable[str] | None = None,
    ) -> list[Any]:
        """Write several key/value pairs and return the values."""
        ttl = ttl or FixedTTL(0)
        writes = []
        for store in self._select(stores):
            seconds = ttl.for_store(store.name)
            if seconds < 0:
                continue
            writes.append(self._timed("mset", store, store.mset(items, seconds)))
        await asyncio.gather(*writes)
        return [value for _, value in items]

    async def delete(self, keys: Sequence[str]) -> None:
        """Delete ``keys`` from every store."""
        if not keys:
            return
        await asyncio.gather(
            *(self._timed("delete", store, store.delete(keys)) for store in self.stores)
        )

    async def prime_cache(self, key: str, value: Any, ttl: TTL | None = None) -> Any:
        """Store a freshly fetched value and hand it back."""
        return await self.set(key, value, ttl)

    async def close(self) -> None:
        for store in self.stores:
            await store.close()
