"""
Cache-Aside Orchestrator

get_or_set(key, loader, ttl):
    1. Cache lookup; a hit returns without calling the loader
    2. Miss (or cache not ready) → call the loader
    3. Non-None result → populate the cache (set, or tagged set when tags
       are given); a failed write is logged, the value is still returned
    4. An unexpected exception from the lookup falls back to the loader
    5. Loader exceptions propagate unchanged

Single-flight:
    With CACHE_SINGLE_FLIGHT enabled, concurrent misses for the same key in
    this process share one loader invocation. The first caller (leader)
    registers a future under the key; later callers await it and receive
    the same value or the same exception. The registry entry is removed as
    soon as the load finishes, so a later miss loads again.
"""

import asyncio
import inspect
from collections.abc import Iterable
from typing import Any

from tagcache.core.config.constants import Stage
from tagcache.core.config.settings import CacheSettings
from tagcache.core.interfaces import Loader, Serializer
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter
from tagcache.infrastructure.cache.tag_index import TagIndex

logger = get_logger(__name__)


class CacheAsideOrchestrator:
    """
    Fetch-or-compute against a caller-supplied loader.

    Usage:
        event = await orchestrator.get_or_set(
            CacheKeys.event(event_id),
            lambda: events_repo.find_by_id(event_id),
            ttl=600,
            tags=[f"event:{event_id}"],
        )
    """

    def __init__(self, adapter: KeyValueAdapter, tag_index: TagIndex, settings: CacheSettings):
        self._kv = adapter
        self._tags = tag_index
        self._single_flight = settings.CACHE_SINGLE_FLIGHT
        self._in_flight: dict[str, asyncio.Future] = {}

    @property
    def in_flight(self) -> int:
        """Number of keys currently being loaded."""
        return len(self._in_flight)

    async def get_or_set(
        self,
        key: str,
        loader: Loader,
        ttl: int | None = None,
        *,
        tags: Iterable[str] | None = None,
        serializer: Serializer | None = None,
    ) -> Any:
        """
        Return the cached value for key, or load, cache and return it.

        STAGE-CACHE.ASIDE

        Args:
            key: Cache key
            loader: Zero-argument callable (sync or async) producing the value
            ttl: Time-to-live in seconds (default TTL when omitted)
            tags: Optional tags; the populated entry is registered under them
            serializer: Serializer for both the lookup and the write

        Raises:
            Whatever the loader raises
        """
        try:
            cached = await self._kv.get(key, serializer)
        except Exception as e:
            log_stage(
                logger,
                Stage.CACHE_ASIDE,
                "Cache lookup raised, falling back to loader",
                level="error",
                key=key,
                error=str(e),
            )
            cached = None

        if cached is not None:
            return cached

        if not self._single_flight:
            return await self._load_and_populate(key, loader, ttl, tags, serializer)

        pending = self._in_flight.get(key)
        if pending is not None:
            log_stage(logger, Stage.CACHE_ASIDE, "Joining in-flight load", level="debug", key=key)
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                # Leader cancelled, this caller was not: load independently
                if not pending.cancelled() or asyncio.current_task().cancelling():
                    raise
                log_stage(logger, Stage.CACHE_ASIDE, "In-flight load cancelled, loading again", level="debug", key=key)
                return await self._load_and_populate(key, loader, ttl, tags, serializer)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            value = await self._load_and_populate(key, loader, ttl, tags, serializer)
        except asyncio.CancelledError:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved: a leader may have no followers
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    async def _load_and_populate(
        self,
        key: str,
        loader: Loader,
        ttl: int | None,
        tags: Iterable[str] | None,
        serializer: Serializer | None,
    ) -> Any:
        value = loader()
        if inspect.isawaitable(value):
            value = await value

        if value is None:
            log_stage(logger, Stage.CACHE_ASIDE, "Loader returned None, nothing cached", level="debug", key=key)
            return None

        try:
            if tags:
                stored = await self._tags.set_with_tags(key, value, tags, ttl, serializer)
            else:
                stored = await self._kv.set(key, value, ttl, serializer)
        except Exception as e:
            log_stage(
                logger,
                Stage.CACHE_ASIDE,
                "Cache population raised, returning loaded value",
                level="error",
                key=key,
                error=str(e),
            )
            stored = False

        if not stored:
            log_stage(logger, Stage.CACHE_ASIDE, "Loaded value was not cached", level="warning", key=key)

        return value
