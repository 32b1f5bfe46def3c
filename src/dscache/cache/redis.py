"""Redis store for dscache.

Provides async Redis operations for cached payloads.
Uses redis-py async client for connection pooling.
"""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, Any, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from dscache.cache import codec

if TYPE_CHECKING:
    from redis.asyncio import Redis


def create_redis(url: str) -> Redis:
    """Create a Redis client for ``url``.

    Uses connection pooling for efficient connection management.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=False,  # We're storing bytes
    )


async def close_redis(client: Redis) -> None:
    """Close Redis connections."""
    await client.aclose()


class RedisStore:
    """Distributed store backed by Redis.

    Values are encoded with the orjson codec. A TTL of 0 stores the value
    without expiry.
    """

    name = "redis"

    def __init__(self, client: Redis):
        self.client = client

    async def get(self, key: str) -> Any:
        data = await self.client.get(key)
        if data is None:
            return None
        return codec.loads(data)

    async def mget(self, keys: Sequence[str]) -> list[Any]:
        if not keys:
            return []
        results = await self.client.mget(list(keys))
        return [None if data is None else codec.loads(data) for data in results]

    async def set(self, key: str, value: Any, ttl: int) -> None:
        data = codec.dumps(value)
        if ttl > 0:
            await self.client.set(key, data, ex=ttl)
        else:
            await self.client.set(key, data)

    async def mset(self, items: Sequence[tuple[str, Any]], ttl: int) -> None:
        """Write several values in one MULTI/EXEC transaction."""
        if not items:
            return
        async with self.client.pipeline(transaction=True) as pipe:
            for key, value in items:
                data = codec.dumps(value)
                if ttl > 0:
                    pipe.setex(key, ttl, data)
                else:
                    pipe.set(key, data)
            await pipe.execute()

    async def delete(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0
        return cast(int, await self.client.delete(*keys))

    async def close(self) -> None:
        # The client is owned by whoever created it
        pass

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except RedisError:
            return False
