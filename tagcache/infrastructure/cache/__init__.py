"""
Cache Module

Provides the tag-indexed Redis cache: connection lifecycle, key/value
primitives, tag invalidation, cache-aside loading and diagnostics.
"""

from .cache_service import CacheService
from .decorators import cached, invalidates
from .keys import CacheKeys, build_key, hashed_key
from .serializers import JsonSerializer, ModelSerializer

__all__ = [
    "CacheService",
    "CacheKeys",
    "build_key",
    "hashed_key",
    "cached",
    "invalidates",
    "JsonSerializer",
    "ModelSerializer",
]
