"""
Configuration Module

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Stage identifiers, connection states and Redis key layout

Usage:
------
```python
from tagcache.core.config import Settings, get_settings
from tagcache.core.config.constants import ConnectionState, Stage

settings = Settings(REDIS_HOST="cache.internal")
settings.redis.REDIS_HOST
settings.cache.CACHE_DEFAULT_TTL
```

Environment Variables:
---------------------
```bash
REDIS_HOST=localhost
REDIS_PORT=6379
REDIS_PASSWORD=
REDIS_DB=0
CACHE_DEFAULT_TTL=3600
LOG_LEVEL=INFO
LOG_FORMAT=json
```
"""

from .settings import (
    CacheSettings,
    LoggingSettings,
    RedisSettings,
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "CacheSettings",
    "LoggingSettings",
    "RedisSettings",
    "Settings",
    "get_settings",
    "reload_settings",
]
