"""
Cache Diagnostics

Read-only operational views for dashboards and health endpoints:
- get_stats(): connection status, INFO memory/keyspace summaries and the
  adapter's operation counters (None when Redis is not ready)
- health_check(): ping latency and pool sizing, never raises
"""

import time
from typing import Any

from redis.exceptions import RedisError

from tagcache.core.config.constants import MEMORY_SUMMARY_FIELDS, Stage
from tagcache.core.config.settings import RedisSettings
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.connection import CONNECTIVITY_ERRORS, ConnectionManager
from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter

logger = get_logger(__name__)


class CacheDiagnostics:
    """Connection status and backend memory/keyspace summaries."""

    def __init__(self, connection: ConnectionManager, adapter: KeyValueAdapter, settings: RedisSettings):
        self._conn = connection
        self._kv = adapter
        self._settings = settings

    async def get_stats(self) -> dict[str, Any] | None:
        """
        Snapshot of the cache backend.

        STAGE-CACHE.STATS

        Returns:
            {connected, status, memory, keyspace, operations}, or None when
            Redis is not ready or the INFO queries fail
        """
        client = self._kv.ready_client(Stage.STATS)
        if client is None:
            return None

        try:
            memory = await client.info("memory")
            keyspace = await client.info("keyspace")
        except RedisError as e:
            self._kv.report_failure(Stage.STATS, "Failed to read cache stats", e)
            return None

        return {
            "connected": self._conn.is_ready(),
            "status": self._conn.state.value,
            "memory": {field: memory[field] for field in MEMORY_SUMMARY_FIELDS if field in memory},
            "keyspace": {db: dict(counts) for db, counts in keyspace.items() if isinstance(counts, dict)},
            "operations": self._kv.counters.snapshot(),
        }

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on the Redis connection.

        STAGE-REDIS.HEALTH
        """
        health: dict[str, Any] = {
            "status": "healthy",
            "connected": self._conn.is_ready(),
            "state": self._conn.state.value,
            "host": self._settings.REDIS_HOST,
            "port": self._settings.REDIS_PORT,
            "db": self._settings.REDIS_DB,
            "ping_latency_ms": None,
            "pool_max_connections": None,
        }

        client = self._conn.client
        if client is None or not self._conn.is_ready():
            health["status"] = "unhealthy"
            health["error"] = "Redis not ready"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except (RedisError, OSError) as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            if isinstance(e, CONNECTIVITY_ERRORS):
                self._conn.mark_unavailable(e)
            log_stage(logger, Stage.REDIS_HEALTH, "Redis health check failed", level="warning", error=str(e))
            return health

        pool = self._conn.pool
        if pool is not None:
            health["pool_max_connections"] = pool.max_connections

        return health
