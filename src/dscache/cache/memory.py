"""In-process LRU store.

Values are kept as Python objects (already marshalled by the caller), so
no serialisation happens on this path.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from typing import Any

from dscache.errors import StoreTransportError

DEFAULT_MAX_ITEMS = 100


class MemoryStore:
    """LRU cache with per-entry expiry.

    A TTL of 0 keeps the entry until it is evicted or deleted.
    """

    name = "memory"

    def __init__(
        self,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_items = max_items
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float | None, Any]] = OrderedDict()
        self._lock = asyncio.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreTransportError(self.name, "store is closed")

    def _read(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def _write(self, key: str, value: Any, ttl: int) -> None:
        expires_at = self._clock() + ttl if ttl > 0 else None
        self._entries[key] = (expires_at, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_items:
            self._entries.popitem(last=False)

    async def get(self, key: str) -> Any:
        async with self._lock:
            self._check_open()
            return self._read(key)

    async def mget(self, keys: Sequence[str]) -> list[Any]:
        async with self._lock:
            self._check_open()
            return [self._read(key) for key in keys]

    async def set(self, key: str, value: Any, ttl: int) -> None:
        async with self._lock:
            self._check_open()
            self._write(key, value, ttl)

    async def mset(self, items: Sequence[tuple[str, Any]], ttl: int) -> None:
        async with self._lock:
            self._check_open()
            for key, value in items:
                self._write(key, value, ttl)

    async def delete(self, keys: Sequence[str]) -> int:
        async with self._lock:
            self._check_open()
            deleted = 0
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    deleted += 1
            return deleted

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._closed = True

    def __len__(self) -> int:
        return len(self._entries)
