"""Entity-kind invalidation index.

A plain TTL cache cannot answer "drop every cached query that reads from
kind X". When redis caches queries without expiry, each query's cache key
is also added to one redis set per entity kind it reads from. Invalidating
a kind reads those sets and deletes their members together with the sets.

Example:
    index = EntityKindIndex(redis_client, CacheKeys())

    # Prime a query result and register it under its kinds
    await index.register_query(cache_key, response, ["User"])

    # Later, when User entities change
    deleted = await index.invalidate_entity_kind(["User"])

Registration and invalidation are each one MULTI/EXEC transaction, but they
do not exclude each other: a registration that lands while an invalidation
is between its read and its delete survives that invalidation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, cast

from dscache.cache import codec
from dscache.cache.keys import CacheKeys
from dscache.cache.ttl import TTL
from dscache.errors import NoDistributedStoreError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def _as_str(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class EntityKindIndex:
    """Per-kind redis sets of query cache keys."""

    def __init__(self, client: Redis | None, keys: CacheKeys):
        self._client = client
        self.keys = keys

    @property
    def available(self) -> bool:
        return self._client is not None

    def _require_client(self, operation: str) -> Redis:
        if self._client is None:
            raise NoDistributedStoreError(operation)
        return self._client

    async def register_query(
        self,
        cache_key: str,
        value: Any,
        entity_kinds: Sequence[str],
        ttl: TTL | None = None,
    ) -> list[Any]:
        """Store ``value`` under ``cache_key`` and add the key to each kind's set.

        Returns the raw transaction results. With no TTL (or a TTL of 0 for
        redis) the value does not expire.
        """
        client = self._require_client("register_query")
        seconds = ttl.for_store("redis") if ttl is not None else 0
        data = codec.dumps(value)

        async with client.pipeline(transaction=True) as pipe:
            for kind in entity_kinds:
                pipe.sadd(self.keys.entity_kind_set(kind), cache_key)
            if seconds > 0:
                pipe.setex(cache_key, seconds, data)
            else:
                pipe.set(cache_key, data)
            results = await pipe.execute()

        logger.debug(f"Registered query {cache_key} under kinds {', '.join(entity_kinds)}")
        return cast(list[Any], results)

    async def invalidate_entity_kind(self, entity_kinds: Sequence[str]) -> int:
        """Delete every query cached for ``entity_kinds`` plus the kind sets.

        Returns the number of keys redis reports as deleted.
        """
        client = self._require_client("invalidate_entity_kind")
        if not entity_kinds:
            return 0

        set_keys = [self.keys.entity_kind_set(kind) for kind in entity_kinds]
        async with client.pipeline(transaction=True) as pipe:
            for set_key in set_keys:
                pipe.smembers(set_key)
            memberships = await pipe.execute()

        to_delete = dict.fromkeys(set_keys)
        for members in memberships:
            for member in members or ():
                to_delete[_as_str(member)] = None

        deleted = cast(int, await client.delete(*to_delete))
        logger.info(
            f"Invalidated {deleted} cache keys for kinds {', '.join(entity_kinds)}",
        )
        return deleted
