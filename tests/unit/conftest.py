"""Unit test fixtures: an in-memory stand-in for the redis asyncio client."""

from __future__ import annotations

from typing import Any

import pytest


def _b(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class FakePipeline:
    """Buffers commands and applies them on execute(), like a MULTI/EXEC."""

    def __init__(self, redis: FakeRedis, transaction: bool):
        self.redis = redis
        self.transaction = transaction
        self.commands: list[tuple[Any, ...]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.commands = []

    def _queue(self, *command: Any) -> FakePipeline:
        self.commands.append(command)
        return self

    def sadd(self, key: str, *members: Any) -> FakePipeline:
        return self._queue("sadd", key, *members)

    def set(self, key: str, value: Any, ex: int | None = None) -> FakePipeline:
        return self._queue("set", key, value) if ex is None else self._queue("setex", key, ex, value)

    def setex(self, key: str, ttl: int, value: Any) -> FakePipeline:
        return self._queue("setex", key, ttl, value)

    def smembers(self, key: str) -> FakePipeline:
        return self._queue("smembers", key)

    async def execute(self) -> list[Any]:
        self.redis.executed.append(list(self.commands))
        if self.redis.fail_exec is not None:
            raise self.redis.fail_exec
        results = []
        for name, *args in self.commands:
            results.append(self.redis._apply(name, *args))
        self.commands = []
        return results


class FakeRedis:
    """Tiny subset of redis.asyncio.Redis backed by dicts.

    ``executed`` records every pipeline's command list; ``fail_exec`` and
    ``fail_delete`` inject errors.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.expiry: dict[str, int] = {}
        self.executed: list[list[tuple[Any, ...]]] = []
        self.deleted: list[tuple[str, ...]] = []
        self.fail_exec: Exception | None = None
        self.fail_delete: Exception | None = None
        self.closed = False

    def _apply(self, name: str, *args: Any) -> Any:
        if name == "set":
            key, value = args
            self.data[key] = _b(value)
            self.expiry.pop(key, None)
            return True
        if name == "setex":
            key, ttl, value = args
            self.data[key] = _b(value)
            self.expiry[key] = ttl
            return True
        if name == "sadd":
            key, *members = args
            current = self.data.setdefault(key, set())
            before = len(current)
            current.update(_b(member) for member in members)
            return len(current) - before
        if name == "smembers":
            (key,) = args
            return set(self.data.get(key, set()))
        raise NotImplementedError(name)

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    async def get(self, key: str) -> bytes | None:
        value = self.data.get(key)
        return value if isinstance(value, bytes) else None

    async def mget(self, keys: list[str]) -> list[bytes | None]:
        return [await self.get(key) for key in keys]

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        if ex is None:
            return self._apply("set", key, value)
        return self._apply("setex", key, ex, value)

    async def setex(self, key: str, ttl: int, value: Any) -> bool:
        return self._apply("setex", key, ttl, value)

    async def sadd(self, key: str, *members: Any) -> int:
        return self._apply("sadd", key, *members)

    async def smembers(self, key: str) -> set[bytes]:
        return self._apply("smembers", key)

    async def delete(self, *keys: Any) -> int:
        self.deleted.append(tuple(keys))
        if self.fail_delete is not None:
            raise self.fail_delete
        count = 0
        for key in keys:
            key = key.decode() if isinstance(key, bytes) else key
            if self.data.pop(key, None) is not None:
                count += 1
            self.expiry.pop(key, None)
        return count

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
