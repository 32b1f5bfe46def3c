"""Point-key caching.

Every record handed back to a caller is an ``Entity`` carrying the key it
was stored or fetched under. Records are marshalled to ``KeyedRecord`` on
their way into the stores.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from dscache.cache.codec import attach_key, marshal
from dscache.cache.keys import CacheKeys
from dscache.cache.ttl import CacheOptions, caching_disabled, resolve_ttl
from dscache.config import CacheSettings
from dscache.datastore import Datastore, Entity, Key
from dscache.errors import FetchError, is_not_found
from dscache.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from dscache.cache.manager import CacheManager

logger = logging.getLogger(__name__)

KeyFetchHandler = Callable[[Any], Awaitable[Any]]


def _align(keys: Sequence[Key], fetched: Any) -> list[Any]:
    """Line fetch results up with ``keys``.

    Entities that carry a key are matched by key, anything else by
    position. Keys without a result map to None.
    """
    if fetched is None:
        values: list[Any] = []
    elif isinstance(fetched, (list, tuple)):
        values = list(fetched)
    else:
        values = [fetched]

    present = [value for value in values if value is not None]
    if present and all(isinstance(value, Entity) and value.key is not None for value in present):
        by_key = {value.key: value for value in present}
        return [by_key.get(key) for key in keys]

    values = values[: len(keys)]
    return values + [None] * (len(keys) - len(values))


async def _fetch_batch(fetch: KeyFetchHandler, keys: list[Key]) -> list[Any]:
    """Fetch ``keys`` in one call, aligned with ``keys``.

    A not-found failure naming the missing keys drops those keys and fetches
    the rest again. One that names none of the pending keys resolves them all
    to None.
    """
    pending = list(keys)
    found: dict[Key, Any] = {}

    while pending:
        try:
            fetched = await fetch(pending)
        except Exception as exc:
            if not is_not_found(exc):
                raise
            named = getattr(exc, "keys", None) or ()
            absent = {key for key in named if isinstance(key, Key)} & set(pending)
            if not absent:
                logger.debug(f"Fetch reported not found for {len(pending)} keys")
                break
            logger.debug(f"Fetch reported {len(absent)} of {len(pending)} keys not found")
            pending = [key for key in pending if key not in absent]
            continue
        found.update(zip(pending, _align(pending, fetched)))
        break

    return [found.get(key) for key in keys]


class KeyCache:
    """Cache surface for point-key lookups."""

    def __init__(
        self,
        config: CacheSettings,
        manager: CacheManager,
        keys: CacheKeys,
        datastore: Datastore | None = None,
    ):
        self.config = config
        self.manager = manager
        self.keys = keys
        self.datastore = datastore

    def _default_fetch(self) -> KeyFetchHandler:
        if self.datastore is None:
            raise FetchError("No fetch handler given and no datastore configured")
        return self.datastore.get

    async def wrap(
        self,
        keys: Key | Sequence[Key],
        fetch_handler: KeyFetchHandler | None = None,
        options: CacheOptions | None = None,
    ) -> Any:
        """Return cached entities for ``keys``, fetching and priming the misses.

        For a single key the entity (or None) is returned; for a sequence, a
        list aligned with the keys. Inside a batch, keys a not-found fetch
        failure names resolve to None and the rest are fetched again; a
        not-found failure naming no keys resolves every fetched position to
        None. For a single key it propagates like any other fetch error.
        """
        single = isinstance(keys, Key)
        key_list: list[Key] = [keys] if single else list(keys)  # type: ignore[list-item]
        fetch = fetch_handler or self._default_fetch()
        ttl = resolve_ttl(self.config, options, "keys")

        if caching_disabled(self.config, options, ttl):
            fetched = _align(key_list, await fetch(keys))
            results = [
                None if value is None else attach_key(value, key)
                for key, value in zip(key_list, fetched)
            ]
            return results[0] if single else results

        cache_keys = [self.keys.key(key) for key in key_list]
        cached = await self.manager.mget(*cache_keys)

        results = [
            None if value is None else attach_key(value, key)
            for key, value in zip(key_list, cached)
        ]
        missing = [index for index, value in enumerate(cached) if value is None]

        record_cache_hit("keys", len(key_list) - len(missing))
        record_cache_miss("keys", len(missing))

        if not missing:
            return results[0] if single else results

        missing_keys = [key_list[index] for index in missing]
        logger.debug(f"Key cache miss for {len(missing_keys)} of {len(key_list)} keys")

        if single:
            fetched = _align(missing_keys, await fetch(missing_keys[0]))
        else:
            fetched = await _fetch_batch(fetch, missing_keys)

        to_prime = []
        for index, key, value in zip(missing, missing_keys, fetched):
            if value is None:
                continue
            entity = attach_key(value, key)
            results[index] = entity
            to_prime.append((cache_keys[index], marshal(entity)))

        if to_prime:
            await self.manager.mset(to_prime, ttl)

        return results[0] if single else results

    async def get(self, key: Key) -> Entity | None:
        """Return the cached entity for ``key`` or None."""
        value = await self.manager.get(self.keys.key(key))
        if value is None:
            return None
        return attach_key(value, key)

    async def mget(self, *keys: Key) -> list[Entity | None]:
        """Return cached entities aligned with ``keys`` (None for misses)."""
        if not keys:
            return []
        cached = await self.manager.mget(*(self.keys.key(key) for key in keys))
        return [
            None if value is None else attach_key(value, key)
            for key, value in zip(keys, cached)
        ]

    async def set(self, key: Key, value: Any, options: CacheOptions | None = None) -> Any:
        """Cache ``value`` under ``key`` and return it."""
        ttl = resolve_ttl(self.config, options, "keys")
        await self.manager.set(self.keys.key(key), marshal(attach_key(value, key)), ttl)
        return value

    async def mset(
        self,
        items: Sequence[tuple[Key, Any]],
        options: CacheOptions | None = None,
    ) -> list[Any]:
        """Cache several key/value pairs."""
        ttl = resolve_ttl(self.config, options, "keys")
        await self.manager.mset(
            [(self.keys.key(key), marshal(attach_key(value, key))) for key, value in items],
            ttl,
        )
        return [value for _, value in items]

    async def delete(self, *keys: Key) -> None:
        """Remove cached entities."""
        await self.manager.delete([self.keys.key(key) for key in keys])
