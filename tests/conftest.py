"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures.fake_redis import InMemoryRedis  # noqa: E402

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (see pyproject.toml)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def settings():
    """
    Settings tuned for tests.

    No connect retries (a failed ping fails immediately) and a fast
    reconnect interval so recovery can be observed without long sleeps.
    """
    from tagcache.core.config.settings import Settings

    return Settings(
        REDIS_RETRY_ATTEMPTS=0,
        REDIS_RECONNECT_INTERVAL=0.01,
        CACHE_DEFAULT_TTL=60,
    )


@pytest.fixture
def mock_settings():
    """MagicMock settings for components that only read a few attributes."""
    from tagcache.core.config.settings import Settings

    settings = MagicMock(spec=Settings)
    settings.logging.LOG_LEVEL = "INFO"
    settings.logging.LOG_FORMAT = "json"
    return settings


# ============================================================================
# Redis Fixtures
# ============================================================================


@pytest.fixture
def fake_redis():
    """
    In-memory Redis client stub for testing.

    Mimics the redis.asyncio commands the cache uses, with a virtual clock.
    """
    return InMemoryRedis()


@pytest.fixture
def connection(settings, fake_redis):
    """ConnectionManager wired to the in-memory client (not yet connected)."""
    from tagcache.infrastructure.cache.connection import ConnectionManager

    return ConnectionManager(settings.redis, client=fake_redis)


@pytest.fixture
async def connected(connection):
    """Connected ConnectionManager; disconnected (supervisor cancelled) on teardown."""
    await connection.connect()
    yield connection
    await connection.disconnect()


@pytest.fixture
def adapter(connected, settings):
    from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter

    return KeyValueAdapter(connected, settings.cache)


@pytest.fixture
def tag_index(adapter, settings):
    from tagcache.infrastructure.cache.tag_index import TagIndex

    return TagIndex(adapter, settings.cache)


@pytest.fixture
async def cache_service(settings, fake_redis):
    """Connected CacheService over the in-memory client."""
    from tagcache.infrastructure.cache.cache_service import CacheService

    service = CacheService(settings, client=fake_redis)
    await service.connect()
    yield service
    await service.disconnect()


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_request_context():
    """Make sure no request id leaks between tests."""
    from tagcache.core.logging.logger import clear_request_id

    clear_request_id()
    yield
    clear_request_id()
