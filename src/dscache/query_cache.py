"""Query result caching.

``QueryCache.get`` is the cache-or-fetch entry point for listing queries.
On a miss the fetched result is primed either through the cache manager
or, when redis caches queries without expiry, through the entity-kind
index so that it can be dropped when one of its kinds changes.

Concurrent misses for the same query are not merged: every caller fetches
and primes, and the last write wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from dscache.cache.codec import marshal, unmarshal
from dscache.cache.keys import CacheKeys
from dscache.cache.ttl import (
    TTL,
    CacheOptions,
    caching_disabled,
    redis_caches_queries_forever,
    resolve_ttl,
)
from dscache.config import CacheSettings
from dscache.datastore import Query
from dscache.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from dscache.cache.invalidation import EntityKindIndex
    from dscache.cache.manager import CacheManager

logger = logging.getLogger(__name__)

QueryFetchHandler = Callable[[Query], Awaitable[Any]]


async def _run_query(query: Query) -> Any:
    return await query.run()


class QueryCache:
    """Cache surface for query results."""

    def __init__(
        self,
        config: CacheSettings,
        manager: CacheManager,
        keys: CacheKeys,
        index: EntityKindIndex,
    ):
        self.config = config
        self.manager = manager
        self.keys = keys
        self.index = index

    def _index_route(self) -> bool:
        return self.index.available and redis_caches_queries_forever(self.config)

    async def _prime(
        self,
        cache_key: str,
        query: Query,
        value: Any,
        ttl: TTL,
        options: CacheOptions | None = None,
    ) -> None:
        if ttl.disabled:
            return
        stored = marshal(value)

        if not self._index_route():
            await self.manager.set(cache_key, stored, ttl)
            return

        others = [name for name in self.manager.store_names if name != "redis"]
        logger.debug(
            "Priming query through entity-kind index",
            extra={"cache_key": cache_key, "also_primed": others},
        )
        # redis keeps indexed queries forever unless the call sets its own ttl
        index_ttl = ttl if options is not None and options.ttl is not None else None
        writes = [self.index.register_query(cache_key, stored, query.kinds, index_ttl)]
        if others:
            writes.append(self.manager.set(cache_key, stored, ttl, stores=others))
        await asyncio.gather(*writes)

    async def get(
        self,
        query: Query,
        fetch_handler: QueryFetchHandler | None = None,
        options: CacheOptions | None = None,
    ) -> Any:
        """Return the cached result for ``query`` or fetch and prime it.

        Without ``fetch_handler`` the query runs against its own datastore.
        Fetch errors propagate and leave the cache untouched.
        """
        fetch = fetch_handler or _run_query
        ttl = resolve_ttl(self.config, options, "queries")

        if caching_disabled(self.config, options, ttl):
            return await fetch(query)

        cache_key = self.keys.query(query)
        cached = await self.manager.get(cache_key)
        if cached is not None:
            record_cache_hit("queries")
            logger.debug("Query cache hit", extra={"cache_key": cache_key})
            return unmarshal(cached)

        record_cache_miss("queries")
        logger.debug("Query cache miss", extra={"cache_key": cache_key})

        result = await fetch(query)
        await self._prime(cache_key, query, result, ttl, options)
        return result

    async def mget(self, *queries: Query) -> list[Any]:
        """Return cached results for ``queries``, leaving out misses."""
        if not queries:
            return []
        cached = await self.manager.mget(*(self.keys.query(query) for query in queries))
        return [unmarshal(value) for value in cached if value is not None]

    async def set(self, query: Query, value: Any, options: CacheOptions | None = None) -> Any:
        """Cache ``value`` as the result of ``query``."""
        ttl = resolve_ttl(self.config, options, "queries")
        await self._prime(self.keys.query(query), query, value, ttl, options)
        return value

    async def mset(
        self,
        items: Sequence[tuple[Query, Any]],
        options: CacheOptions | None = None,
    ) -> list[Any]:
        """Cache several query results.

        Each entry is keyed and routed on its own, like ``set``.
        """
        ttl = resolve_ttl(self.config, options, "queries")
        if ttl.disabled:
            return [value for _, value in items]
        if not self._index_route():
            await self.manager.mset(
                [(self.keys.query(query), marshal(value)) for query, value in items],
                ttl,
            )
        else:
            await asyncio.gather(
                *(
                    self._prime(self.keys.query(query), query, value, ttl, options)
                    for query, value in items
                )
            )
        return [value for _, value in items]

    async def delete(self, *queries: Query) -> None:
        """Remove cached results.

        Entity-kind set membership is left alone; use
        ``invalidate_entity_kind`` to clear a whole kind.
        """
        await self.manager.delete([self.keys.query(query) for query in queries])

    async def register_query(
        self,
        query: Query,
        value: Any,
        entity_kinds: Sequence[str] | None = None,
        ttl: TTL | None = None,
    ) -> list[Any]:
        """Cache ``value`` in redis and index it under ``entity_kinds``.

        Defaults to the query's own kinds.
        """
        return await self.index.register_query(
            self.keys.query(query),
            marshal(value),
            entity_kinds or query.kinds,
            ttl,
        )

    async def invalidate_entity_kind(self, *entity_kinds: str) -> int:
        """Drop every indexed query cached for ``entity_kinds``."""
        return await self.index.invalidate_entity_kind(entity_kinds)
