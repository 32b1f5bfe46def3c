"""Cache handle tying stores, manager, index and orchestrators together.

Usage:
    cache = await init_cache(CacheSettings(stores=["memory", "redis"]), datastore=ds)

    users = await cache.queries.get(Query("User").filter("age", ">", 18))
    user = await cache.keys.wrap(Key(("User", 1)))

    # after writing User entities
    await cache.queries.invalidate_entity_kind("User")

    await close_cache()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dscache.cache.invalidation import EntityKindIndex
from dscache.cache.keys import CacheKeys
from dscache.cache.manager import CacheManager, CacheStore
from dscache.cache.memory import MemoryStore
from dscache.cache.redis import RedisStore, close_redis, create_redis
from dscache.config import CacheSettings, settings
from dscache.datastore import Datastore
from dscache.key_cache import KeyCache
from dscache.query_cache import QueryCache

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

KNOWN_STORES = ("memory", "redis")


class DatastoreCache:
    """Explicit handle on one configured cache.

    A redis client passed in stays owned by the caller; one created from
    ``config.redis_url`` is closed by ``close()``.
    """

    def __init__(
        self,
        config: CacheSettings | None = None,
        datastore: Datastore | None = None,
        redis_client: Redis | None = None,
    ):
        self.config = config or settings
        unknown = [name for name in self.config.stores if name not in KNOWN_STORES]
        if unknown:
            raise ValueError(f"Unknown cache stores: {', '.join(unknown)}")

        self._owns_redis = False
        if self.config.has_redis and redis_client is None:
            redis_client = create_redis(self.config.redis_url)
            self._owns_redis = True
        self.redis_client = redis_client if self.config.has_redis else None

        stores: list[CacheStore] = []
        self.redis_store: RedisStore | None = None
        for name in self.config.stores:
            if name == "memory":
                stores.append(MemoryStore(self.config.memory_max_items))
            else:
                self.redis_store = RedisStore(self.redis_client)  # type: ignore[arg-type]
                stores.append(self.redis_store)

        self.cache_keys = CacheKeys(self.config.cache_prefix)
        self.manager = CacheManager(stores)
        self.index = EntityKindIndex(self.redis_client, self.cache_keys)
        self.keys = KeyCache(self.config, self.manager, self.cache_keys, datastore)
        self.queries = QueryCache(self.config, self.manager, self.cache_keys, self.index)
        self._closed = False

        logger.info(f"Cache configured with stores: {', '.join(self.config.stores)}")

    async def health_check(self) -> bool:
        """Check the distributed store. Memory-only caches are always healthy."""
        if self.redis_store is None:
            return True
        return await self.redis_store.health_check()

    async def close(self) -> None:
        """Dispose stores and the redis client this handle created."""
        if self._closed:
            return
        self._closed = True
        await self.manager.close()
        if self._owns_redis and self.redis_client is not None:
            await close_redis(self.redis_client)
        logger.info("Cache closed")


# Process-wide handle
_cache: DatastoreCache | None = None


async def init_cache(
    config: CacheSettings | None = None,
    datastore: Datastore | None = None,
    redis_client: Redis | None = None,
) -> DatastoreCache:
    """Configure the process-wide cache, replacing any previous one."""
    global _cache
    if _cache is not None:
        await _cache.close()
    _cache = DatastoreCache(config, datastore=datastore, redis_client=redis_client)
    return _cache


def get_cache() -> DatastoreCache:
    """Return the process-wide cache configured by ``init_cache``."""
    if _cache is None:
        raise RuntimeError("Cache is not initialised, call init_cache() first")
    return _cache


async def close_cache() -> None:
    """Close the process-wide cache."""
    global _cache
    if _cache is not None:
        await _cache.close()
        _cache = None
