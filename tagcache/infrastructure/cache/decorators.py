"""
Caching Decorators

Function-level equivalents of response-cache and invalidation middleware:

    @cached(cache, ttl=300, tags=lambda event_id: [f"event:{event_id}"])
    async def load_event(event_id: str) -> dict: ...

    @invalidates(cache, tags=lambda event_id, **_: [f"event:{event_id}"])
    async def update_event(event_id: str, **changes) -> dict: ...
"""

import functools
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from tagcache.core.interfaces import Serializer
from tagcache.core.logging.logger import get_logger
from tagcache.infrastructure.cache.keys import hashed_key
from tagcache.infrastructure.cache.tag_index import normalize_tags

if TYPE_CHECKING:
    from tagcache.infrastructure.cache.cache_service import CacheService

logger = get_logger(__name__)

TagSource = str | Iterable[str] | Callable[..., Iterable[str]] | None


def _resolve_tags(tags: TagSource, args: tuple, kwargs: dict) -> list[str]:
    if tags is None:
        return []
    if callable(tags):
        tags = tags(*args, **kwargs)
    return normalize_tags(tags)


def default_key(func: Callable, args: tuple, kwargs: dict) -> str:
    """fn:{module}.{qualname}:{md5 of positional and sorted keyword arguments}."""
    parts = [str(arg) for arg in args]
    parts.extend(f"{name}={value}" for name, value in sorted(kwargs.items()))
    return hashed_key(f"fn:{func.__module__}.{func.__qualname__}", *parts)


def cached(
    cache: "CacheService",
    ttl: int | None = None,
    key_builder: Callable[..., str] | None = None,
    tags: TagSource = None,
    serializer: Serializer | None = None,
):
    """
    Cache an async function's result with get_or_set.

    Args:
        cache: CacheService the results are stored in
        ttl: Time-to-live in seconds (default TTL when omitted)
        key_builder: Builds the key from the call arguments
        tags: Static tags, or a callable building tags from the call arguments
        serializer: Serializer for the cached value

    None results are returned but never cached.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            key = key_builder(*args, **kwargs) if key_builder else default_key(func, args, kwargs)
            return await cache.get_or_set(
                key,
                lambda: func(*args, **kwargs),
                ttl,
                tags=_resolve_tags(tags, args, kwargs),
                serializer=serializer,
            )

        return wrapper

    return decorator


def invalidates(cache: "CacheService", tags: TagSource):
    """
    Invalidate tags after the wrapped coroutine returns successfully.

    If the wrapped coroutine raises, nothing is invalidated and the error
    propagates. Invalidation failures are logged, never raised.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            result = await func(*args, **kwargs)
            tag_list = _resolve_tags(tags, args, kwargs)
            if tag_list and not await cache.invalidate_by_tags(tag_list):
                logger.warning("Post-write cache invalidation failed", tags=tag_list, function=func.__qualname__)
            return result

        return wrapper

    return decorator
