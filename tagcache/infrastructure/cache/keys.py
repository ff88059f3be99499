"""
Cache Key Builders

One place that decides how keys are spelled, so writers and invalidators
agree. Pagination defaults to page 1, 10 items.
"""

import hashlib
from typing import Any

from tagcache.core.config.constants import REDIS_KEY_API_RESPONSE


def build_key(*parts: Any) -> str:
    """Join key parts with ':' (e.g. build_key("events", "category", "music") → "events:category:music")."""
    return ":".join(str(part) for part in parts)


def hashed_key(prefix: str, *args: Any) -> str:
    """
    Generate a fixed-length key from arbitrary arguments.

    Uses MD5 for fast hashing (collision risk acceptable for cache keys;
    the worst case is a miss or a stale hit for another input).

    Returns:
        "{prefix}:{md5 of ':'-joined args}"
    """
    data = ":".join(str(arg) for arg in args)
    return f"{prefix}:{hashlib.md5(data.encode()).hexdigest()}"


class CacheKeys:
    """Canonical keys for the application's cached read models."""

    # Users
    @staticmethod
    def user(user_id: Any) -> str:
        return build_key("user", user_id)

    @staticmethod
    def user_by_email(email: str) -> str:
        return build_key("user", "email", email)

    @staticmethod
    def user_by_username(username: str) -> str:
        return build_key("user", "username", username)

    # Events
    @staticmethod
    def event(event_id: Any) -> str:
        return build_key("event", event_id)

    @staticmethod
    def events_by_category(category: str, page: int = 1, limit: int = 10) -> str:
        return build_key("events", "category", category, page, limit)

    @staticmethod
    def events_by_organizer(organizer_id: Any, page: int = 1, limit: int = 10) -> str:
        return build_key("events", "organizer", organizer_id, page, limit)

    @staticmethod
    def events_by_status(status: str, page: int = 1, limit: int = 10) -> str:
        return build_key("events", "status", status, page, limit)

    @staticmethod
    def events_search(query: str, page: int = 1, limit: int = 10) -> str:
        return build_key("events", "search", query, page, limit)

    @staticmethod
    def events_upcoming(page: int = 1, limit: int = 10) -> str:
        return build_key("events", "upcoming", page, limit)

    # Categories
    @staticmethod
    def categories() -> str:
        return "categories:all"

    @staticmethod
    def category(category_id: Any) -> str:
        return build_key("category", category_id)

    # Tasks
    @staticmethod
    def tasks_by_event(event_id: Any) -> str:
        return build_key("tasks", "event", event_id)

    @staticmethod
    def tasks_by_user(user_id: Any) -> str:
        return build_key("tasks", "user", user_id)

    # General
    @staticmethod
    def api_response(endpoint: str, params: str = "") -> str:
        return build_key(REDIS_KEY_API_RESPONSE, endpoint, params)

    @staticmethod
    def rate_limit(identifier: str) -> str:
        return build_key("rate", identifier)
