"""
Unit Tests for CacheService

End-to-end behaviour of the composed service over the in-memory Redis:
lifecycle, delegation and degraded operation.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tagcache.core.config.constants import ConnectionState
from tagcache.infrastructure.cache.cache_service import CacheService
from tests.test_fixtures import CacheTestFactory, InMemoryRedis


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_connects_and_disconnects(self, settings):
        client = InMemoryRedis()

        async with CacheService(settings, client=client) as cache:
            assert cache.is_ready() is True
            assert cache.state is ConnectionState.READY

        assert cache.state is ConnectionState.CLOSED
        assert client.closed is False

    @pytest.mark.asyncio
    async def test_instances_are_independent(self):
        first = CacheTestFactory.service()
        second = CacheTestFactory.service()
        await first.connect()

        assert first.is_ready() is True
        assert second.is_ready() is False
        await first.disconnect()

    @pytest.mark.asyncio
    async def test_settings_default_to_process_settings(self):
        from tagcache.core.config.settings import get_settings

        cache = CacheService(client=InMemoryRedis())

        assert cache.settings is get_settings()


@pytest.mark.unit
class TestOperations:
    @pytest.mark.asyncio
    async def test_full_flow(self, cache_service, fake_redis):
        loader_calls = []

        async def load_events():
            loader_calls.append(1)
            return [{"id": 1}, {"id": 2}]

        key = "events:upcoming:1:10"
        events = await cache_service.get_or_set(key, load_events, 300, tags=["events"])
        again = await cache_service.get_or_set(key, load_events, 300, tags=["events"])

        assert events == again == [{"id": 1}, {"id": 2}]
        assert len(loader_calls) == 1
        assert await cache_service.tags_of(key) == {"events"}

        assert await cache_service.invalidate_by_tags(["events"]) is True
        assert await cache_service.get(key) is None

    @pytest.mark.asyncio
    async def test_primitives_delegate(self, cache_service):
        assert await cache_service.set("user:1", {"name": "Ada"}) is True
        assert await cache_service.get("user:1") == {"name": "Ada"}
        assert await cache_service.delete("user:1") is True
        assert await cache_service.increment("rate:x", ttl=60) == 1
        assert await cache_service.hash_set("h", "f", 1) is True
        assert await cache_service.hash_get("h", "f") == 1
        assert await cache_service.hash_get_all("h") == {"f": 1}
        assert await cache_service.delete_by_pattern("rate:*") is True

    @pytest.mark.asyncio
    async def test_diagnostics_delegate(self, cache_service):
        assert (await cache_service.health_check())["status"] == "healthy"
        assert (await cache_service.get_stats())["connected"] is True


@pytest.mark.unit
class TestDegradedOperation:
    @pytest.mark.asyncio
    async def test_unreachable_backend_from_start(self):
        cache = CacheTestFactory.service(client=CacheTestFactory.failing_redis_client())

        assert await cache.connect() is False

        assert await cache.get("k") is None
        assert await cache.set("k", 1) is False
        assert await cache.delete("k") is False
        assert await cache.delete_by_pattern("*") is False
        assert await cache.increment("k") == 0
        assert await cache.hash_get("h", "f") is None
        assert await cache.hash_get_all("h") == {}
        assert await cache.set_with_tags("k", 1, ["t"]) is False
        assert await cache.invalidate_by_tags(["t"]) is False
        assert await cache.get_stats() is None
        assert (await cache.health_check())["status"] == "unhealthy"
        assert await cache.get_or_set("k", lambda: "from-source") == "from-source"
        await cache.disconnect()

    @pytest.mark.asyncio
    async def test_outage_and_recovery(self, cache_service, fake_redis):
        await cache_service.set("k", "before")
        fake_redis.fail_with = RedisConnectionError("Connection reset")

        assert await cache_service.get("k") is None
        assert cache_service.state is ConnectionState.ERRORED

        fake_redis.fail_with = None

        assert await CacheTestFactory.wait_for(cache_service.is_ready)
        assert await cache_service.get("k") == "before"
