"""
Unit Tests for Configuration Settings

Tests the settings loading, validation, and default values.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tagcache.core.config.settings import (
    CacheSettings,
    RedisSettings,
    Settings,
    get_settings,
    reload_settings,
)


@pytest.mark.unit
class TestSettingsInitialization:
    """Test Settings class initialization and validation."""

    def test_settings_can_be_created(self):
        """Test that Settings can be instantiated."""
        settings = Settings()
        assert settings is not None

    def test_settings_has_section_views(self):
        """Test that Settings exposes redis, cache and logging sections."""
        settings = Settings()

        assert isinstance(settings.redis, RedisSettings)
        assert isinstance(settings.cache, CacheSettings)
        assert settings.logging.LOG_LEVEL in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        """Test documented defaults when no environment is set."""
        settings = Settings(_env_file=None)

        assert settings.REDIS_HOST == "localhost"
        assert settings.REDIS_PORT == 6379
        assert settings.REDIS_DB == 0
        assert settings.REDIS_PASSWORD is None
        assert settings.REDIS_MAX_CONNECTIONS == 50
        assert settings.CACHE_DEFAULT_TTL == 3600
        assert settings.CACHE_SINGLE_FLIGHT is True
        assert settings.CACHE_TAG_TTL_EXTEND_ONLY is True

    def test_section_views_mirror_flat_fields(self):
        """Test that nested views carry the overridden flat values."""
        settings = Settings(REDIS_HOST="cache.internal", REDIS_PORT=6380, CACHE_DEFAULT_TTL=120)

        assert settings.redis.REDIS_HOST == "cache.internal"
        assert settings.redis.REDIS_PORT == 6380
        assert settings.cache.CACHE_DEFAULT_TTL == 120


@pytest.mark.unit
class TestSettingsValidation:
    """Test fail-fast validation of configuration values."""

    def test_non_positive_default_ttl_rejected(self):
        with pytest.raises(ValidationError):
            Settings(CACHE_DEFAULT_TTL=0)

    def test_port_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            Settings(REDIS_PORT=70000)

    def test_log_level_is_normalized(self):
        """Test that log level is uppercased."""
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="verbose")

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValidationError):
            Settings(LOG_FORMAT="xml")


@pytest.mark.unit
class TestEnvironmentLoading:
    """Test that settings load from environment variables."""

    @patch.dict(os.environ, {"REDIS_HOST": "redis.test", "CACHE_DEFAULT_TTL": "900", "CACHE_SINGLE_FLIGHT": "false"})
    def test_environment_overrides(self):
        settings = Settings()

        assert settings.REDIS_HOST == "redis.test"
        assert settings.cache.CACHE_DEFAULT_TTL == 900
        assert settings.cache.CACHE_SINGLE_FLIGHT is False

    def test_get_settings_is_cached(self):
        """Test that get_settings returns the same instance until reloaded."""
        first = get_settings()
        assert get_settings() is first

        reloaded = reload_settings()
        assert reloaded is not first
        assert get_settings() is reloaded
