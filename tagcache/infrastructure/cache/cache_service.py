"""
Cache Service

Single entry point for the tag-indexed Redis cache. Composes:

    ConnectionManager       connection lifecycle and readiness
    KeyValueAdapter         get/set/delete/pattern delete/counters/hashes
    TagIndex                tagged writes and tag invalidation
    CacheAsideOrchestrator  get_or_set with single-flight loading
    CacheDiagnostics        stats and health

Every cache operation is total: when Redis is down the service degrades to
"no cache" and callers keep working against their source of truth.

Usage:
    cache = CacheService(Settings(REDIS_HOST="cache.internal"))
    await cache.connect()

    user = await cache.get_or_set(CacheKeys.user(user_id), lambda: users.find(user_id), ttl=600)
    await cache.invalidate_by_tags([f"user:{user_id}"])

    await cache.disconnect()

Or as an async context manager:
    async with CacheService(settings) as cache:
        ...
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

import redis.asyncio as redis

from tagcache.core.config.constants import ConnectionState
from tagcache.core.config.settings import Settings, get_settings
from tagcache.core.interfaces import Loader, Serializer
from tagcache.core.logging.logger import get_logger
from tagcache.infrastructure.cache.cache_aside import CacheAsideOrchestrator
from tagcache.infrastructure.cache.connection import ConnectionManager
from tagcache.infrastructure.cache.diagnostics import CacheDiagnostics
from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter
from tagcache.infrastructure.cache.tag_index import TagIndex

logger = get_logger(__name__)

T = TypeVar("T")


class CacheService:
    """
    Tag-indexed cache over a single Redis backend.

    Instances are independent: construct one per backend and pass it to the
    code that needs it.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: redis.Redis | None = None,
        serializer: Serializer | None = None,
    ):
        """
        Args:
            settings: Configuration (process settings when omitted)
            client: Pre-built redis.asyncio client; a pool is created otherwise
            serializer: Default value serializer (JSON when omitted)
        """
        self._settings = settings or get_settings()
        cache_settings = self._settings.cache

        self._connection = ConnectionManager(self._settings.redis, client=client)
        self._kv = KeyValueAdapter(self._connection, cache_settings, serializer)
        self._tags = TagIndex(self._kv, cache_settings)
        self._aside = CacheAsideOrchestrator(self._kv, self._tags, cache_settings)
        self._diagnostics = CacheDiagnostics(self._connection, self._kv, self._settings.redis)

        logger.info(
            "Cache service initialized",
            host=self._settings.REDIS_HOST,
            port=self._settings.REDIS_PORT,
            default_ttl=cache_settings.CACHE_DEFAULT_TTL,
            single_flight=cache_settings.CACHE_SINGLE_FLIGHT,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Connect to Redis; False means the cache is bypassed until it recovers."""
        return await self._connection.connect()

    async def disconnect(self) -> None:
        await self._connection.disconnect()

    def is_ready(self) -> bool:
        return self._connection.is_ready()

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def settings(self) -> Settings:
        return self._settings

    async def __aenter__(self) -> CacheService:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Key/value operations
    # -------------------------------------------------------------------------

    async def get(self, key: str, serializer: Serializer[T] | None = None) -> T | None:
        return await self._kv.get(key, serializer)

    async def set(self, key: str, value: Any, ttl: int | None = None, serializer: Serializer | None = None) -> bool:
        return await self._kv.set(key, value, ttl, serializer)

    async def delete(self, key: str) -> bool:
        return await self._kv.delete(key)

    async def delete_by_pattern(self, pattern: str) -> bool:
        return await self._kv.delete_by_pattern(pattern)

    async def increment(self, key: str, ttl: int | None = None) -> int:
        return await self._kv.increment(key, ttl)

    async def hash_set(
        self,
        key: str,
        field: str,
        value: Any,
        ttl: int | None = None,
        serializer: Serializer | None = None,
    ) -> bool:
        return await self._kv.hash_set(key, field, value, ttl, serializer)

    async def hash_get(self, key: str, field: str, serializer: Serializer[T] | None = None) -> T | None:
        return await self._kv.hash_get(key, field, serializer)

    async def hash_get_all(self, key: str, serializer: Serializer[T] | None = None) -> dict[str, T]:
        return await self._kv.hash_get_all(key, serializer)

    # -------------------------------------------------------------------------
    # Cache-aside
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        loader: Loader,
        ttl: int | None = None,
        *,
        tags: Iterable[str] | None = None,
        serializer: Serializer | None = None,
    ) -> Any:
        """Return the cached value or load, cache and return it (loader errors propagate)."""
        return await self._aside.get_or_set(key, loader, ttl, tags=tags, serializer=serializer)

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    async def set_with_tags(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] | str | None,
        ttl: int | None = None,
        serializer: Serializer | None = None,
    ) -> bool:
        return await self._tags.set_with_tags(key, value, tags, ttl, serializer)

    async def invalidate_by_tags(self, tags: Iterable[str] | str) -> bool:
        return await self._tags.invalidate_by_tags(tags)

    async def tags_of(self, key: str) -> set[str]:
        return await self._tags.tags_of(key)

    async def keys_of(self, tag: str) -> set[str]:
        return await self._tags.keys_of(tag)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    async def get_stats(self) -> dict[str, Any] | None:
        return await self._diagnostics.get_stats()

    async def health_check(self) -> dict[str, Any]:
        return await self._diagnostics.health_check()
