#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
tag-indexed cache service. Every tunable used by the connection manager,
key/value adapter, tag index and logging lives here.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Nested views (settings.redis, settings.cache, settings.logging)
- Explicit injection: CacheService receives a Settings object
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis connection configuration.

    STAGE-0.1: Redis connection configuration

    Timeouts bound every backend call; a timed-out call is handled exactly
    like any other backend error (logged, safe default returned).
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, ge=1, le=65535, description="Redis server port")
    REDIS_DB: int = Field(default=0, ge=0, description="Redis logical database index")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")

    REDIS_MAX_CONNECTIONS: int = Field(default=50, gt=0, description="Maximum pooled connections")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, gt=0, description="Command timeout in seconds")
    REDIS_RETRY_ATTEMPTS: int = Field(default=3, ge=0, description="Retry budget for connect and commands")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, ge=0, description="Pool health check interval in seconds")
    REDIS_RECONNECT_INTERVAL: float = Field(default=5.0, gt=0, description="Seconds between reconnect attempts")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache behaviour configuration.

    STAGE-2: Cache TTL and invalidation configuration
    """

    CACHE_DEFAULT_TTL: int = Field(default=3600, gt=0, description="TTL applied when the caller omits one")
    CACHE_SINGLE_FLIGHT: bool = Field(default=True, description="Share one loader call between concurrent misses")
    CACHE_TAG_TTL_EXTEND_ONLY: bool = Field(
        default=True,
        description="Only ever extend tag set TTLs (requires Redis >= 7 EXPIRE NX/GT)",
    )
    CACHE_SCAN_COUNT: int = Field(default=500, gt=0, description="SCAN batch hint for pattern deletes")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        settings = Settings(REDIS_HOST="cache.internal", CACHE_DEFAULT_TTL=600)
        cache = CacheService(settings)

        settings.redis.REDIS_HOST
        settings.cache.CACHE_DEFAULT_TTL
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, ge=1, le=65535, description="Redis server port")
    REDIS_DB: int = Field(default=0, ge=0, description="Redis logical database index")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, gt=0, description="Maximum pooled connections")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, gt=0, description="Command timeout in seconds")
    REDIS_RETRY_ATTEMPTS: int = Field(default=3, ge=0, description="Retry budget for connect and commands")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, ge=0, description="Pool health check interval in seconds")
    REDIS_RECONNECT_INTERVAL: float = Field(default=5.0, gt=0, description="Seconds between reconnect attempts")

    # Cache settings
    CACHE_DEFAULT_TTL: int = Field(default=3600, gt=0, description="TTL applied when the caller omits one")
    CACHE_SINGLE_FLIGHT: bool = Field(default=True, description="Share one loader call between concurrent misses")
    CACHE_TAG_TTL_EXTEND_ONLY: bool = Field(
        default=True,
        description="Only ever extend tag set TTLs (requires Redis >= 7 EXPIRE NX/GT)",
    )
    CACHE_SCAN_COUNT: int = Field(default=500, gt=0, description="SCAN batch hint for pattern deletes")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_RETRY_ATTEMPTS=self.REDIS_RETRY_ATTEMPTS,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_RECONNECT_INTERVAL=self.REDIS_RECONNECT_INTERVAL,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_SINGLE_FLIGHT=self.CACHE_SINGLE_FLIGHT,
            CACHE_TAG_TTL_EXTEND_ONLY=self.CACHE_TAG_TTL_EXTEND_ONLY,
            CACHE_SCAN_COUNT=self.CACHE_SCAN_COUNT,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Lazily created process settings (used by the logging bootstrap and as the
# fallback when a CacheService is built without explicit settings)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the process settings instance.

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Lazily created settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
