"""Tests for the cache handle and its process-wide lifecycle."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from dscache import client as client_module
from dscache.cache.memory import MemoryStore
from dscache.cache.redis import RedisStore
from dscache.client import DatastoreCache, close_cache, get_cache, init_cache
from dscache.config import CacheSettings


@pytest.fixture(autouse=True)
def reset_global_cache():
    client_module._cache = None
    yield
    client_module._cache = None


class TestDatastoreCache:
    """Tests for DatastoreCache construction."""

    def test_memory_only(self, memory_settings) -> None:
        cache = DatastoreCache(memory_settings)

        assert cache.manager.store_names == ["memory"]
        assert isinstance(cache.manager.stores[0], MemoryStore)
        assert cache.redis_client is None
        assert cache.redis_store is None
        assert not cache.index.available

    def test_store_order_follows_config(self, fake_redis) -> None:
        cache = DatastoreCache(CacheSettings(stores=["redis", "memory"]), redis_client=fake_redis)

        assert cache.manager.store_names == ["redis", "memory"]
        assert isinstance(cache.manager.store("redis"), RedisStore)
        assert cache.redis_store is cache.manager.store("redis")
        assert cache.index.available

    def test_memory_max_items(self) -> None:
        cache = DatastoreCache(CacheSettings(stores=["memory"], memory_max_items=7))

        assert cache.manager.store("memory")._max_items == 7

    def test_unknown_store(self) -> None:
        with pytest.raises(ValueError, match="mongo"):
            DatastoreCache(CacheSettings(stores=["memory", "mongo"]))

    def test_no_stores(self) -> None:
        with pytest.raises(ValueError):
            DatastoreCache(CacheSettings(stores=[]))

    def test_creates_redis_client_from_url(self, fake_redis) -> None:
        config = CacheSettings(stores=["redis"], redis_url="redis://cache:6379/2")

        with patch.object(client_module, "create_redis", return_value=fake_redis) as create:
            cache = DatastoreCache(config)

        create.assert_called_once_with("redis://cache:6379/2")
        assert cache.redis_client is fake_redis


class TestLifecycle:
    """Tests for close and health checks."""

    @pytest.mark.asyncio
    async def test_close_keeps_caller_owned_client(self, fake_redis) -> None:
        cache = DatastoreCache(CacheSettings(stores=["redis"]), redis_client=fake_redis)

        await cache.close()

        assert not fake_redis.closed

    @pytest.mark.asyncio
    async def test_close_disposes_created_client(self, fake_redis) -> None:
        with patch.object(client_module, "create_redis", return_value=fake_redis):
            cache = DatastoreCache(CacheSettings(stores=["redis"]))

        await cache.close()
        await cache.close()

        assert fake_redis.closed

    @pytest.mark.asyncio
    async def test_memory_health_check(self, memory_settings) -> None:
        assert await DatastoreCache(memory_settings).health_check() is True

    @pytest.mark.asyncio
    async def test_redis_health_check(self, fake_redis) -> None:
        cache = DatastoreCache(CacheSettings(stores=["redis"]), redis_client=fake_redis)

        assert await cache.health_check() is True

        fake_redis.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        assert await cache.health_check() is False


class TestGlobalCache:
    """Tests for init_cache/get_cache/close_cache."""

    def test_get_before_init(self) -> None:
        with pytest.raises(RuntimeError):
            get_cache()

    @pytest.mark.asyncio
    async def test_init_get_close(self, memory_settings) -> None:
        datastore = MagicMock()

        cache = await init_cache(memory_settings, datastore=datastore)

        assert get_cache() is cache
        assert cache.keys.datastore is datastore

        await close_cache()

        with pytest.raises(RuntimeError):
            get_cache()

    @pytest.mark.asyncio
    async def test_reinit_closes_previous(self, memory_settings) -> None:
        first = await init_cache(memory_settings)
        first.close = AsyncMock()

        second = await init_cache(memory_settings)

        first.close.assert_awaited_once()
        assert get_cache() is second
