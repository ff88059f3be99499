"""
tagcache

Tag-indexed Redis caching layer with cache-aside loading.
"""

from tagcache.core.config import Settings, get_settings
from tagcache.core.logging import setup_logging
from tagcache.infrastructure.cache import (
    CacheKeys,
    CacheService,
    JsonSerializer,
    ModelSerializer,
    cached,
    invalidates,
)

__version__ = "1.0.0"

__all__ = [
    "CacheService",
    "CacheKeys",
    "Settings",
    "get_settings",
    "setup_logging",
    "cached",
    "invalidates",
    "JsonSerializer",
    "ModelSerializer",
    "__version__",
]
