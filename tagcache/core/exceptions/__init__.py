"""
Exception Module

Module Structure:
-----------------
- **base.py**: TagCacheError base class
- **cache.py**: Cache-related exceptions (connection, key, serialization)

Usage:
------
```python
from tagcache.core.exceptions import CacheConnectionError, CacheSerializationError
```
"""

from tagcache.core.exceptions.base import TagCacheError
from tagcache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)

__all__ = [
    "TagCacheError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
]
