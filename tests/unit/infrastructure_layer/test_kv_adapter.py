"""
Unit Tests for KeyValueAdapter

Tests the primitive cache operations against the in-memory Redis, including
TTL handling, pattern deletes, counters, hashes and failure fallbacks.
"""

import pytest
from pydantic import BaseModel
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from tagcache.core.config.constants import ConnectionState
from tagcache.infrastructure.cache.serializers import ModelSerializer


class UserProfile(BaseModel):
    id: int
    name: str


@pytest.mark.unit
class TestGetSet:
    @pytest.mark.asyncio
    async def test_round_trip(self, adapter):
        value = {"id": 1, "name": "Ada", "roles": ["admin"], "active": True}

        assert await adapter.set("user:1", value, ttl=30) is True
        assert await adapter.get("user:1") == value

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, adapter):
        assert await adapter.get("user:missing") is None
        assert adapter.counters.misses == 1

    @pytest.mark.asyncio
    async def test_value_expires_after_ttl(self, adapter, fake_redis):
        await adapter.set("user:1", "Ada", ttl=10)

        fake_redis.advance(9)
        assert await adapter.get("user:1") == "Ada"

        fake_redis.advance(2)
        assert await adapter.get("user:1") is None

    @pytest.mark.asyncio
    async def test_default_ttl_applied(self, adapter, fake_redis, settings):
        await adapter.set("user:1", "Ada")

        assert fake_redis.ttl_of("user:1") == settings.CACHE_DEFAULT_TTL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -5, 1.5, True])
    async def test_invalid_ttl_rejected(self, adapter, fake_redis, ttl):
        assert await adapter.set("user:1", "Ada", ttl=ttl) is False
        assert "user:1" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, adapter):
        assert await adapter.set("", "value") is False
        assert await adapter.get("") is None

    @pytest.mark.asyncio
    async def test_unserializable_value_not_written(self, adapter, fake_redis):
        assert await adapter.set("obj", object()) is False
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_non_finite_float_not_written(self, adapter, fake_redis):
        assert await adapter.set("reading", {"x": float("nan")}) is False
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_miss(self, adapter, fake_redis):
        fake_redis.data["user:1"] = "{broken"

        assert await adapter.get("user:1") is None

    @pytest.mark.asyncio
    async def test_typed_serializer(self, adapter):
        profiles = ModelSerializer(UserProfile)

        await adapter.set("user:1", UserProfile(id=1, name="Ada"), serializer=profiles)
        cached = await adapter.get("user:1", serializer=profiles)

        assert isinstance(cached, UserProfile)
        assert cached.name == "Ada"

    @pytest.mark.asyncio
    async def test_counters_track_hits_and_misses(self, adapter):
        await adapter.set("k", 1)
        await adapter.get("k")
        await adapter.get("k")
        await adapter.get("missing")

        snapshot = adapter.counters.snapshot()
        assert snapshot["hits"] == 2
        assert snapshot["misses"] == 1
        assert snapshot["hit_rate"] == 0.667
        assert snapshot["sets"] == 1


@pytest.mark.unit
class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_existing_key(self, adapter):
        await adapter.set("user:1", "Ada")

        assert await adapter.delete("user:1") is True
        assert await adapter.get("user:1") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key(self, adapter):
        assert await adapter.delete("user:missing") is False

    @pytest.mark.asyncio
    async def test_delete_by_pattern(self, adapter):
        await adapter.set("events:category:music:1:10", [1])
        await adapter.set("events:category:art:1:10", [2])
        await adapter.set("event:1", {"id": 1})

        assert await adapter.delete_by_pattern("events:*") is True

        assert await adapter.get("events:category:music:1:10") is None
        assert await adapter.get("events:category:art:1:10") is None
        assert await adapter.get("event:1") == {"id": 1}

    @pytest.mark.asyncio
    async def test_delete_by_pattern_no_match(self, adapter):
        assert await adapter.delete_by_pattern("nothing:*") is False

    @pytest.mark.asyncio
    async def test_delete_by_pattern_issues_single_delete(self, adapter, fake_redis):
        for i in range(5):
            await adapter.set(f"rate:{i}", i)
        fake_redis.calls.clear()

        await adapter.delete_by_pattern("rate:*")

        assert fake_redis.calls == ["scan", "delete"]


@pytest.mark.unit
class TestIncrement:
    @pytest.mark.asyncio
    async def test_increment_counts_up_and_restarts_after_ttl(self, adapter, fake_redis):
        results = [await adapter.increment("rate:client", ttl=60) for _ in range(5)]
        assert results == [1, 2, 3, 4, 5]

        fake_redis.advance(61)

        assert await adapter.increment("rate:client", ttl=60) == 1

    @pytest.mark.asyncio
    async def test_ttl_set_only_on_first_increment(self, adapter, fake_redis):
        await adapter.increment("rate:client", ttl=60)
        fake_redis.advance(30)
        await adapter.increment("rate:client", ttl=60)

        assert fake_redis.ttl_of("rate:client") == 30

    @pytest.mark.asyncio
    async def test_increment_non_integer_returns_zero(self, adapter, fake_redis):
        fake_redis.data["rate:client"] = "abc"

        assert await adapter.increment("rate:client") == 0

    @pytest.mark.asyncio
    async def test_counter_created_with_ttl_in_one_transaction(self, adapter, fake_redis):
        fake_redis.fail_commands["expire"] = RedisTimeoutError("timeout")

        assert await adapter.increment("rate:client", ttl=60) == 1
        assert fake_redis.ttl_of("rate:client") == 60
        assert fake_redis.pipelines_executed == [["set", "incr"]]

    @pytest.mark.asyncio
    async def test_failed_transaction_leaves_no_counter(self, adapter, fake_redis):
        fake_redis.fail_commands["execute"] = RedisTimeoutError("timeout")

        assert await adapter.increment("rate:client", ttl=60) == 0
        assert fake_redis.ttl_of("rate:client") == -2


@pytest.mark.unit
class TestHashes:
    @pytest.mark.asyncio
    async def test_hash_round_trip(self, adapter):
        assert await adapter.hash_set("session:1", "cart", {"items": 2}, ttl=30) is True
        assert await adapter.hash_set("session:1", "theme", "dark", ttl=30) is True

        assert await adapter.hash_get("session:1", "cart") == {"items": 2}
        assert await adapter.hash_get_all("session:1") == {"cart": {"items": 2}, "theme": "dark"}

    @pytest.mark.asyncio
    async def test_hash_field_miss(self, adapter):
        assert await adapter.hash_get("session:1", "cart") is None
        assert await adapter.hash_get_all("session:1") == {}

    @pytest.mark.asyncio
    async def test_hash_shares_one_ttl(self, adapter, fake_redis):
        await adapter.hash_set("session:1", "cart", 1, ttl=30)

        fake_redis.advance(31)

        assert await adapter.hash_get_all("session:1") == {}

    @pytest.mark.asyncio
    async def test_hash_set_is_transactional(self, adapter, fake_redis):
        await adapter.hash_set("session:1", "cart", 1, ttl=30)

        assert fake_redis.pipelines_executed == [["hset", "expire"]]

    @pytest.mark.asyncio
    async def test_hash_get_all_skips_malformed_fields(self, adapter, fake_redis):
        fake_redis.data["session:1"] = {"good": '"ok"', "bad": "{broken"}

        assert await adapter.hash_get_all("session:1") == {"good": "ok"}


@pytest.mark.unit
class TestFailureFallbacks:
    """Every operation degrades to its safe default."""

    @pytest.mark.asyncio
    async def test_safe_defaults_when_backend_unreachable(self, adapter, fake_redis):
        fake_redis.fail_with = RedisConnectionError("Connection refused")

        assert await adapter.get("k") is None
        assert await adapter.set("k", 1) is False
        assert await adapter.delete("k") is False
        assert await adapter.delete_by_pattern("k*") is False
        assert await adapter.increment("k") == 0
        assert await adapter.hash_set("h", "f", 1) is False
        assert await adapter.hash_get("h", "f") is None
        assert await adapter.hash_get_all("h") == {}

    @pytest.mark.asyncio
    async def test_connectivity_error_flips_readiness(self, adapter, connected, fake_redis):
        fake_redis.fail_with = RedisConnectionError("Connection reset")

        await adapter.get("k")

        assert connected.state is ConnectionState.ERRORED
        # Not ready: the backend is no longer touched
        fake_redis.calls.clear()
        assert await adapter.get("k") is None
        assert "get" not in fake_redis.calls

    @pytest.mark.asyncio
    async def test_command_error_keeps_readiness(self, adapter, connected, fake_redis):
        fake_redis.fail_commands["get"] = ResponseError("WRONGTYPE")

        assert await adapter.get("k") is None

        assert connected.state is ConnectionState.READY
        assert adapter.counters.errors == 1

    @pytest.mark.asyncio
    async def test_operations_bypassed_when_not_connected(self, settings, fake_redis):
        from tagcache.infrastructure.cache.connection import ConnectionManager
        from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter

        adapter = KeyValueAdapter(ConnectionManager(settings.redis, client=fake_redis), settings.cache)

        assert await adapter.set("k", 1) is False
        assert await adapter.get("k") is None
        assert fake_redis.calls == []
