"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory
from .fake_redis import FakePipeline, InMemoryRedis

__all__ = ["CacheTestFactory", "FakePipeline", "InMemoryRedis"]
