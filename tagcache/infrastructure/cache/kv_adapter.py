"""
Key/Value Adapter

Typed, serialization-safe primitive operations over Redis with uniform
readiness guarding.

Failure Semantics:
    Every public operation is total. Backend errors, invalid keys and
    serialization errors are logged and turned into the operation's safe
    default; connectivity errors are also reported to the ConnectionManager
    so readiness flips to ERRORED.

    get              -> None
    set              -> False
    delete           -> False
    delete_by_pattern-> False
    increment        -> 0
    hash_set         -> False
    hash_get         -> None
    hash_get_all     -> {}
"""

from dataclasses import dataclass
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from tagcache.core.config.constants import Stage
from tagcache.core.config.settings import CacheSettings
from tagcache.core.exceptions import CacheError, CacheKeyError, CacheSerializationError
from tagcache.core.interfaces import Serializer
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.connection import CONNECTIVITY_ERRORS, ConnectionManager
from tagcache.infrastructure.cache.serializers import DEFAULT_SERIALIZER

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class OperationCounters:
    """Per-process operation counters surfaced by diagnostics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0

    def snapshot(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
            "sets": self.sets,
            "deletes": self.deletes,
            "errors": self.errors,
        }


class KeyValueAdapter:
    """
    Primitive cache operations: get, set, delete, pattern delete, counters
    and hash fields.

    Usage:
        adapter = KeyValueAdapter(connection, settings.cache)
        await adapter.set("event:42", {"title": "Launch"}, ttl=600)
        event = await adapter.get("event:42")
    """

    def __init__(
        self,
        connection: ConnectionManager,
        settings: CacheSettings,
        serializer: Serializer | None = None,
    ):
        self._conn = connection
        self._default_ttl = settings.CACHE_DEFAULT_TTL
        self._scan_count = settings.CACHE_SCAN_COUNT
        self._serializer = serializer or DEFAULT_SERIALIZER
        self._counters = OperationCounters()

    @property
    def counters(self) -> OperationCounters:
        return self._counters

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    def is_ready(self) -> bool:
        return self._conn.is_ready()

    # -------------------------------------------------------------------------
    # Helpers shared with the tag index
    # -------------------------------------------------------------------------

    def ready_client(self, stage: Stage) -> redis.Redis | None:
        """Return the client when Redis is ready, else None (caller bypasses)."""
        if not self._conn.is_ready():
            log_stage(logger, stage, "Redis not ready, skipping cache operation", level="debug")
            return None
        return self._conn.client

    def resolve_ttl(self, ttl: int | None, stage: Stage, key: str) -> int | None:
        """Apply the default TTL; None means the TTL is unusable."""
        expiry = self._default_ttl if ttl is None else ttl
        if not isinstance(expiry, int) or isinstance(expiry, bool) or expiry <= 0:
            log_stage(logger, stage, "Rejected non-positive TTL", level="warning", key=key, ttl=ttl)
            return None
        return expiry

    @staticmethod
    def check_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise CacheKeyError("Cache key must be a non-empty string", details={"key": repr(key)})

    def encode(self, value: Any, serializer: Serializer | None = None) -> str:
        return (serializer or self._serializer).dumps(value)

    def decode(self, payload: str, serializer: Serializer[T] | None = None) -> T:
        return (serializer or self._serializer).loads(payload)

    def report_failure(self, stage: Stage, message: str, error: Exception, **fields) -> None:
        """Log a swallowed failure and propagate connectivity loss to readiness."""
        self._counters.errors += 1
        if isinstance(error, CONNECTIVITY_ERRORS):
            self._conn.mark_unavailable(error)
        log_stage(
            logger,
            stage,
            message,
            level="error",
            error=str(error),
            error_type=type(error).__name__,
            **fields,
        )

    # -------------------------------------------------------------------------
    # Basic Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str, serializer: Serializer[T] | None = None) -> T | None:
        """
        Get and decode a value.

        STAGE-CACHE.GET

        Returns:
            Decoded value, or None on miss / not ready / any failure
        """
        client = self.ready_client(Stage.CACHE_GET)
        if client is None:
            return None

        try:
            self.check_key(key)
            payload = await client.get(key)
        except (CacheKeyError, RedisError) as e:
            self.report_failure(Stage.CACHE_GET, "Cache get failed", e, key=key)
            return None

        if payload is None:
            self._counters.misses += 1
            log_stage(logger, Stage.CACHE_GET, "Cache miss", level="debug", key=key)
            return None

        try:
            value = self.decode(payload, serializer)
        except CacheSerializationError as e:
            self._counters.misses += 1
            self.report_failure(Stage.CACHE_GET, "Undecodable cached value treated as miss", e, key=key)
            return None

        self._counters.hits += 1
        log_stage(logger, Stage.CACHE_GET, "Cache hit", level="debug", key=key)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        serializer: Serializer | None = None,
    ) -> bool:
        """
        Serialize and write a value with expiry (SET key value EX ttl).

        STAGE-CACHE.SET

        Returns:
            True if written; False lets callers bypass caching
        """
        client = self.ready_client(Stage.CACHE_SET)
        if client is None:
            return False

        expiry = self.resolve_ttl(ttl, Stage.CACHE_SET, key)
        if expiry is None:
            return False

        try:
            self.check_key(key)
            await client.set(key, self.encode(value, serializer), ex=expiry)
        except (CacheError, RedisError) as e:
            self.report_failure(Stage.CACHE_SET, "Cache set failed", e, key=key)
            return False

        self._counters.sets += 1
        log_stage(logger, Stage.CACHE_SET, "Cache set", level="debug", key=key, ttl=expiry)
        return True

    async def delete(self, key: str) -> bool:
        """
        Delete one key.

        Returns:
            True if a key was removed
        """
        client = self.ready_client(Stage.CACHE_DELETE)
        if client is None:
            return False

        try:
            self.check_key(key)
            removed = await client.delete(key)
        except (CacheKeyError, RedisError) as e:
            self.report_failure(Stage.CACHE_DELETE, "Cache delete failed", e, key=key)
            return False

        self._counters.deletes += removed
        log_stage(logger, Stage.CACHE_DELETE, "Cache deleted", level="debug", key=key, removed=removed)
        return removed > 0

    async def delete_by_pattern(self, pattern: str) -> bool:
        """
        Delete every key matching a glob pattern.

        Enumerates matches with SCAN (non-blocking, unlike KEYS), then removes
        them with a single DEL.

        Returns:
            True if at least one key matched and the batch delete succeeded
        """
        client = self.ready_client(Stage.CACHE_DELETE_PATTERN)
        if client is None:
            return False

        try:
            self.check_key(pattern)
            # SCAN may return a key more than once
            keys = list(dict.fromkeys([key async for key in client.scan_iter(match=pattern, count=self._scan_count)]))
            if not keys:
                log_stage(logger, Stage.CACHE_DELETE_PATTERN, "No keys matched pattern", level="debug", pattern=pattern)
                return False
            removed = await client.delete(*keys)
        except (CacheKeyError, RedisError) as e:
            self.report_failure(Stage.CACHE_DELETE_PATTERN, "Cache pattern delete failed", e, pattern=pattern)
            return False

        self._counters.deletes += removed
        log_stage(
            logger,
            Stage.CACHE_DELETE_PATTERN,
            "Cache pattern deleted",
            pattern=pattern,
            matched=len(keys),
            removed=removed,
        )
        return True

    # -------------------------------------------------------------------------
    # Counter Operations
    # -------------------------------------------------------------------------

    async def increment(self, key: str, ttl: int | None = None) -> int:
        """
        Atomically increment a counter.

        SET key 0 EX ttl NX and INCR run in one MULTI/EXEC, so the TTL is
        attached exactly when the counter is created. An orphaned counter
        cannot live forever and restarts at 1 once it expires.

        Returns:
            New counter value, or 0 when the cache is unavailable
        """
        client = self.ready_client(Stage.CACHE_INCR)
        if client is None:
            return 0

        expiry = self.resolve_ttl(ttl, Stage.CACHE_INCR, key)
        if expiry is None:
            return 0

        try:
            self.check_key(key)
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=expiry, nx=True)
                pipe.incr(key)
                _, count = await pipe.execute()
        except (CacheKeyError, RedisError) as e:
            self.report_failure(Stage.CACHE_INCR, "Counter increment failed", e, key=key)
            return 0

        return count

    # -------------------------------------------------------------------------
    # Hash Operations
    # -------------------------------------------------------------------------

    async def hash_set(
        self,
        key: str,
        field: str,
        value: Any,
        ttl: int | None = None,
        serializer: Serializer | None = None,
    ) -> bool:
        """
        Set one hash field; the whole hash shares one TTL.

        HSET and EXPIRE are sent in one MULTI/EXEC pipeline.
        """
        client = self.ready_client(Stage.CACHE_HASH)
        if client is None:
            return False

        expiry = self.resolve_ttl(ttl, Stage.CACHE_HASH, key)
        if expiry is None:
            return False

        try:
            self.check_key(key)
            payload = self.encode(value, serializer)
            async with client.pipeline(transaction=True) as pipe:
                pipe.hset(key, field, payload)
                pipe.expire(key, expiry)
                await pipe.execute()
        except (CacheError, RedisError) as e:
            self.report_failure(Stage.CACHE_HASH, "Hash field set failed", e, key=key, field=field)
            return False

        self._counters.sets += 1
        return True

    async def hash_get(self, key: str, field: str, serializer: Serializer[T] | None = None) -> T | None:
        """Get and decode one hash field (None on miss or failure)."""
        client = self.ready_client(Stage.CACHE_HASH)
        if client is None:
            return None

        try:
            self.check_key(key)
            payload = await client.hget(key, field)
            if payload is None:
                self._counters.misses += 1
                return None
            value = self.decode(payload, serializer)
        except (CacheError, RedisError) as e:
            self.report_failure(Stage.CACHE_HASH, "Hash field get failed", e, key=key, field=field)
            return None

        self._counters.hits += 1
        return value

    async def hash_get_all(self, key: str, serializer: Serializer[T] | None = None) -> dict[str, T]:
        """
        Get and decode every field of a hash.

        Malformed fields are skipped (and logged); the remaining fields are
        still returned.
        """
        client = self.ready_client(Stage.CACHE_HASH)
        if client is None:
            return {}

        try:
            self.check_key(key)
            raw = await client.hgetall(key)
        except (CacheKeyError, RedisError) as e:
            self.report_failure(Stage.CACHE_HASH, "Hash get-all failed", e, key=key)
            return {}

        result: dict[str, T] = {}
        for field, payload in raw.items():
            try:
                result[field] = self.decode(payload, serializer)
            except CacheSerializationError as e:
                self.report_failure(Stage.CACHE_HASH, "Skipping undecodable hash field", e, key=key, field=field)

        if result:
            self._counters.hits += 1
        else:
            self._counters.misses += 1
        return result
