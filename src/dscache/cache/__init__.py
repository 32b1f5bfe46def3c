"""Cache layer for dscache.

- Deterministic cache keys for point keys and queries
- TTL resolution across one or several stores
- Memory and Redis stores behind a multi-store manager
- Entity-kind index for bulk invalidation of cached queries
"""

from dscache.cache.codec import KeyedRecord, marshal, unmarshal
from dscache.cache.invalidation import EntityKindIndex
from dscache.cache.keys import CacheKeys, stringify_key, stringify_query
from dscache.cache.manager import CacheManager, CacheStore
from dscache.cache.memory import MemoryStore
from dscache.cache.redis import RedisStore, close_redis, create_redis
from dscache.cache.ttl import (
    CACHE_FOREVER,
    NO_CACHE,
    TTL,
    CacheOptions,
    FixedTTL,
    PerStoreTTL,
    caching_disabled,
    resolve_ttl,
)

__all__ = [
    # Keys
    "CacheKeys",
    "stringify_key",
    "stringify_query",
    # TTL
    "CACHE_FOREVER",
    "NO_CACHE",
    "TTL",
    "CacheOptions",
    "FixedTTL",
    "PerStoreTTL",
    "caching_disabled",
    "resolve_ttl",
    # Stores
    "CacheManager",
    "CacheStore",
    "MemoryStore",
    "RedisStore",
    "create_redis",
    "close_redis",
    # Payloads
    "KeyedRecord",
    "marshal",
    "unmarshal",
    # Invalidation
    "EntityKindIndex",
]
