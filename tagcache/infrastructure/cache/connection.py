"""
Redis Connection Manager

Owns the lifecycle of the single logical backend connection (a pooled
redis-py asyncio client) and the readiness state every other component
consults before touching Redis.

State machine:
    DISCONNECTED ──connect()──▶ CONNECTING ──ping ok──▶ READY
                                     │                    │
                                  ping failed      connectivity error
                                     ▼                    ▼
                                  ERRORED ◀───────────────┘
                                     │
                               ping ok (reconnect supervisor)
                                     ▼
                                   READY

    any state ──disconnect()──▶ CLOSED

Failures never propagate to the host process: a failed connect() is logged,
returns False and leaves a background supervisor pinging the backend every
REDIS_RECONNECT_INTERVAL seconds.
"""

import asyncio
import contextlib

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from tagcache.core.config.constants import ConnectionState, Stage
from tagcache.core.config.settings import RedisSettings
from tagcache.core.exceptions import CacheConnectionError
from tagcache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

# Errors that mean the backend is unreachable (as opposed to a bad command)
CONNECTIVITY_ERRORS = (ConnectionError, TimeoutError)


class ConnectionManager:
    """
    Manages Redis connection lifecycle, pooling and readiness.

    Pool Configuration (from RedisSettings):
    - Max connections, connect timeout, command (socket) timeout
    - redis-py command retries: Retry(ExponentialBackoff(), REDIS_RETRY_ATTEMPTS)
    - Initial ping retried with tenacity under the same budget

    A pre-built client can be injected (shared pools, tests); the manager
    then never creates a pool of its own.
    """

    def __init__(self, settings: RedisSettings, client: redis.Redis | None = None):
        self._settings = settings
        self._client: redis.Redis | None = client
        self._owns_client = client is None
        self._pool: ConnectionPool | None = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._supervisor: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Readiness
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_ready(self) -> bool:
        """True only while the last interaction with Redis succeeded."""
        return self._state is ConnectionState.READY and self._client is not None

    @property
    def client(self) -> redis.Redis | None:
        return self._client

    @property
    def pool(self) -> ConnectionPool | None:
        return self._pool

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """
        Establish the Redis connection.

        STAGE-REDIS.CONNECT: Connection establishment

        Idempotent: returns immediately while connecting or already ready.

        Returns:
            True if Redis is ready, False if the connection failed (the
            reconnect supervisor keeps pinging in the background)
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.READY):
            return self.is_ready()

        async with self._lock:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.READY):
                return self.is_ready()

            self._state = ConnectionState.CONNECTING
            log_stage(
                logger,
                Stage.REDIS_CONNECT,
                "Connecting to Redis",
                host=self._settings.REDIS_HOST,
                port=self._settings.REDIS_PORT,
                db=self._settings.REDIS_DB,
            )

            try:
                await self._open()
            except CacheConnectionError as e:
                self._state = ConnectionState.ERRORED
                log_stage(
                    logger,
                    Stage.REDIS_CONNECT,
                    "Redis unavailable, cache will be bypassed until it recovers",
                    level="error",
                    **e.details,
                )
                self._start_supervisor()
                return False

            self._state = ConnectionState.READY
            log_stage(
                logger,
                Stage.REDIS_CONNECT,
                "Redis connected successfully",
                host=self._settings.REDIS_HOST,
                port=self._settings.REDIS_PORT,
                max_connections=self._settings.REDIS_MAX_CONNECTIONS,
            )
            return True

    async def _open(self) -> None:
        """
        Build the client (unless injected) and verify it with PING.

        Raises:
            CacheConnectionError: If Redis cannot be reached within the retry budget
        """
        if self._client is None:
            self._pool = ConnectionPool(
                host=self._settings.REDIS_HOST,
                port=self._settings.REDIS_PORT,
                db=self._settings.REDIS_DB,
                password=self._settings.REDIS_PASSWORD,
                max_connections=self._settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=self._settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=self._settings.REDIS_SOCKET_TIMEOUT,
                retry=Retry(ExponentialBackoff(), self._settings.REDIS_RETRY_ATTEMPTS),
                retry_on_error=[ConnectionError, TimeoutError],
                health_check_interval=self._settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.REDIS_RETRY_ATTEMPTS + 1),
                wait=wait_exponential_jitter(initial=0.1, max=2.0),
                retry=retry_if_exception_type(CONNECTIVITY_ERRORS),
                reraise=True,
            ):
                with attempt:
                    await self._client.ping()
        except (RedisError, OSError) as e:
            raise CacheConnectionError.from_exception(
                e,
                message=f"Failed to connect to Redis: {e}",
                host=self._settings.REDIS_HOST,
                port=self._settings.REDIS_PORT,
                db=self._settings.REDIS_DB,
            )

    async def disconnect(self) -> None:
        """
        Close the client and pool.

        STAGE-REDIS.DISCONNECT: Connection cleanup

        An injected client belongs to the caller and is left open. Never
        raises; errors while closing are logged.
        """
        self._state = ConnectionState.CLOSED

        if self._supervisor is not None:
            self._supervisor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._supervisor
            self._supervisor = None

        if not self._owns_client:
            log_stage(logger, Stage.REDIS_DISCONNECT, "Redis disconnected, injected client left open")
            return

        try:
            if self._client is not None:
                await self._client.aclose()
            if self._pool is not None:
                await self._pool.disconnect()
        except (RedisError, OSError) as e:
            log_stage(logger, Stage.REDIS_DISCONNECT, "Error while closing Redis", level="warning", error=str(e))

        self._client = None
        self._pool = None

        log_stage(logger, Stage.REDIS_DISCONNECT, "Redis disconnected")

    # -------------------------------------------------------------------------
    # Failure reporting and recovery
    # -------------------------------------------------------------------------

    def mark_unavailable(self, error: BaseException) -> None:
        """
        Record a connectivity failure observed by another component.

        Flips READY → ERRORED and starts the reconnect supervisor.
        """
        if self._state is not ConnectionState.READY:
            return

        self._state = ConnectionState.ERRORED
        log_stage(
            logger,
            Stage.REDIS_RECONNECT,
            "Redis connection lost, cache bypassed",
            level="warning",
            error=str(error),
        )
        self._start_supervisor()

    async def ping(self) -> bool:
        """
        PING the backend once and restore READY on success.

        Returns:
            True if Redis answered
        """
        if self._client is None or self._state is ConnectionState.CLOSED:
            return False

        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            log_stage(logger, Stage.REDIS_RECONNECT, "Redis still unavailable", level="debug", error=str(e))
            return False

        if self._state is ConnectionState.ERRORED:
            self._state = ConnectionState.READY
            log_stage(logger, Stage.REDIS_RECONNECT, "Redis connection recovered")
        return True

    def _start_supervisor(self) -> None:
        if self._supervisor is not None and not self._supervisor.done():
            return
        self._supervisor = asyncio.create_task(self._supervise())

    async def _supervise(self) -> None:
        while self._state is ConnectionState.ERRORED:
            await asyncio.sleep(self._settings.REDIS_RECONNECT_INTERVAL)
            if await self.ping():
                return
