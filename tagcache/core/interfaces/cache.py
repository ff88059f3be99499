"""
Cache Protocols

Architectural Decision: Protocol-based abstraction
- Serialization is parameterized by the value type at each call site, so a
  typed serializer (e.g. ModelSerializer[UserProfile]) makes get() return
  ``UserProfile | None`` to the type checker
- Loaders are plain callables; sync and async loaders are both accepted
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

# Loader passed to get_or_set: called with no arguments on a miss
Loader = Callable[[], T | Awaitable[T]]


@runtime_checkable
class Serializer(Protocol[T]):
    """
    Encodes application values to the string stored in Redis and back.

    Implementations:
    - JsonSerializer: primitives, lists, string-keyed dicts (orjson)
    - ModelSerializer: any type pydantic can validate (models, dataclasses,
      typed containers)
    """

    def dumps(self, value: T) -> str:
        """
        Encode a value.

        Raises:
            CacheSerializationError: If the value cannot be encoded
        """
        ...

    def loads(self, payload: str) -> T:
        """
        Decode a stored payload.

        Raises:
            CacheSerializationError: If the payload is malformed
        """
        ...
