"""TTL resolution.

A TTL is either a ``FixedTTL`` applied to every store or, when several
stores are configured, a ``PerStoreTTL`` that each store adapter resolves
with its own name at write time.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal, Union

from dscache.config import CacheSettings

OperationKind = Literal["keys", "queries"]

# Sentinels
NO_CACHE = -1
CACHE_FOREVER = 0


@dataclass(frozen=True)
class CacheOptions:
    """Per-call cache options.

    ``cache`` forces caching on or off for the call. ``ttl`` overrides the
    configured TTL in seconds.
    """

    cache: bool | None = None
    ttl: int | None = None


@dataclass(frozen=True)
class FixedTTL:
    seconds: int

    def for_store(self, store_name: str) -> int:
        return self.seconds

    @property
    def disabled(self) -> bool:
        return self.seconds == NO_CACHE


@dataclass(frozen=True)
class PerStoreTTL:
    """TTL looked up per store name, with a fallback for unlisted stores."""

    table: Mapping[str, int] = field(default_factory=dict)
    default: int = 0

    def __call__(self, store_name: str) -> int:
        return self.for_store(store_name)

    def for_store(self, store_name: str) -> int:
        return self.table.get(store_name, self.default)

    @property
    def disabled(self) -> bool:
        return False


TTL = Union[FixedTTL, PerStoreTTL]


def resolve_ttl(
    config: CacheSettings,
    options: CacheOptions | None,
    kind: OperationKind,
) -> TTL:
    """Resolve the TTL for one cache operation.

    Precedence: per-call ttl, then a global ``-1`` for the operation kind,
    then the per-store table when more than one store is configured, then
    the global value for the operation kind.
    """
    if options is not None and options.ttl is not None:
        return FixedTTL(options.ttl)

    global_ttl = config.ttl.for_kind(kind)
    if global_ttl == NO_CACHE:
        return FixedTTL(NO_CACHE)

    if config.multi_store:
        table = {}
        for store_name in config.stores:
            value = config.ttl.store_value(store_name, kind)
            if value is not None:
                table[store_name] = value
        return PerStoreTTL(table, default=global_ttl)

    return FixedTTL(global_ttl)


def caching_disabled(config: CacheSettings, options: CacheOptions | None, ttl: TTL) -> bool:
    """Return True if the call must go straight to the fetch handler."""
    if ttl.disabled:
        return True
    if options is not None and options.cache is False:
        return True
    if not config.global_cache and (options is None or options.cache is not True):
        return True
    return False


def redis_caches_queries_forever(config: CacheSettings) -> bool:
    """Redis configured with no expiry for queries: prime via the entity-kind index."""
    if not config.has_redis:
        return False
    return config.ttl.store_value("redis", "queries") == CACHE_FOREVER
