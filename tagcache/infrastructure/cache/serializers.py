"""
Value Serializers

JsonSerializer covers the default value shapes (primitives, ordered sequences,
string-keyed mappings) using orjson. ModelSerializer wraps a pydantic
TypeAdapter so that values decode back into their declared type.

Round-trip contract:
    loads(dumps(value)) == value for every supported shape.
    Tuples come back as lists (JSON has a single sequence type).
"""

import math
from typing import Any, Generic, TypeVar

import orjson
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from tagcache.core.exceptions import CacheSerializationError

T = TypeVar("T")


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(_has_non_finite(item) for item in value)
    return False


class JsonSerializer:
    """
    orjson-backed serializer for untyped JSON-compatible values.

    NaN and Infinity are rejected: orjson would write them as null.
    """

    def dumps(self, value: Any) -> str:
        if _has_non_finite(value):
            raise CacheSerializationError("NaN and Infinity cannot be stored as JSON")
        try:
            return orjson.dumps(value).decode("utf-8")
        except TypeError as e:
            raise CacheSerializationError(
                f"Value of type {type(value).__name__} is not JSON serializable",
                details={"error": str(e)},
            )

    def loads(self, payload: str | bytes) -> Any:
        try:
            return orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise CacheSerializationError("Malformed cached payload", details={"error": str(e)})


class ModelSerializer(Generic[T]):
    """
    Typed serializer built on pydantic's TypeAdapter.

    Usage:
        profiles = ModelSerializer(UserProfile)
        await cache.set("user:42", profile, serializer=profiles)
        profile = await cache.get("user:42", serializer=profiles)  # UserProfile | None
    """

    def __init__(self, value_type: type[T]):
        self._value_type = value_type
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    @property
    def value_type(self) -> type[T]:
        return self._value_type

    def dumps(self, value: T) -> str:
        try:
            if _has_non_finite(self._adapter.dump_python(value)):
                raise CacheSerializationError(f"NaN and Infinity cannot be stored as {self._type_name}")
            return self._adapter.dump_json(value).decode("utf-8")
        except PydanticSerializationError as e:
            raise CacheSerializationError(
                f"Cannot serialize value as {self._type_name}",
                details={"error": str(e)},
            )

    def loads(self, payload: str | bytes) -> T:
        try:
            return self._adapter.validate_json(payload)
        except ValidationError as e:
            raise CacheSerializationError(
                f"Cached payload does not validate as {self._type_name}",
                details={"error": str(e)},
            )

    @property
    def _type_name(self) -> str:
        return getattr(self._value_type, "__name__", repr(self._value_type))


# Default serializer shared by every component
DEFAULT_SERIALIZER = JsonSerializer()
