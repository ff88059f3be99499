"""
Cache-Related Exceptions

None of these escape a public cache operation: the connection manager and the
key/value adapter catch them and degrade to safe defaults.
"""

from tagcache.core.exceptions.base import TagCacheError


class CacheError(TagCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to Redis.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """Raised when a cache key is unusable (empty or not a string)."""
    pass


class CacheSerializationError(CacheError):
    """
    Raised when a value cannot be encoded or a stored payload cannot be decoded.

    A decode failure on read is treated as a cache miss.
    """
    pass
