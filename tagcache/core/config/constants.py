"""
System Constants and Enumerations

Architectural Decision: Centralized constants for maintainability
- Single source of truth for key prefixes and stage identifiers
- Type-safe enums for connection state
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache processing stages used as the ``stage`` field of log events.

    Format: {COMPONENT}.{OPERATION}
    """

    # Connection lifecycle
    REDIS_CONNECT = "REDIS.CONNECT"
    REDIS_DISCONNECT = "REDIS.DISCONNECT"
    REDIS_RECONNECT = "REDIS.RECONNECT"
    REDIS_HEALTH = "REDIS.HEALTH"

    # Key/value primitives
    CACHE_GET = "CACHE.GET"
    CACHE_SET = "CACHE.SET"
    CACHE_DELETE = "CACHE.DELETE"
    CACHE_DELETE_PATTERN = "CACHE.DELETE_PATTERN"
    CACHE_INCR = "CACHE.INCR"
    CACHE_HASH = "CACHE.HASH"

    # Orchestration
    CACHE_ASIDE = "CACHE.ASIDE"
    TAG_SET = "TAG.SET"
    TAG_INVALIDATE = "TAG.INVALIDATE"
    STATS = "CACHE.STATS"


# ============================================================================
# Connection States
# ============================================================================


class ConnectionState(str, Enum):
    """
    Backend connection states.

    DISCONNECTED: connect() never called
    CONNECTING: connect() in progress
    READY: last interaction with the backend succeeded
    ERRORED: connectivity failure observed, reconnect supervisor running
    CLOSED: disconnect() called
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    ERRORED = "errored"
    CLOSED = "closed"


# ============================================================================
# Redis Key Layout
# ============================================================================

# keysOf(tag) -> SET of data keys
REDIS_KEY_TAG_PREFIX = "tag:"
# tagsOf(key) -> SET of tag names
REDIS_KEY_TAGS_OF_PREFIX = "tags:"

# Prefix for hashed API response keys
REDIS_KEY_API_RESPONSE = "api"

# INFO memory fields surfaced by diagnostics
MEMORY_SUMMARY_FIELDS = (
    "used_memory",
    "used_memory_human",
    "used_memory_peak_human",
    "maxmemory",
    "maxmemory_policy",
    "mem_fragmentation_ratio",
)
