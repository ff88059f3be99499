"""
Tag Index

Groups cache keys under semantic tags so related entries can be invalidated
in one call ("every page mentioning event 42").

Redis layout:
    tag:{tag}   SET of data keys carrying the tag     (keysOf)
    tags:{key}  SET of tags attached to the data key  (tagsOf)

Write path:
    The data key and both index structures are written in one MULTI/EXEC
    transaction. If EXEC reports a failed command after partially applying,
    the data key and its reverse index are deleted again so no untagged data
    key survives.

TTL policy:
    tags:{key} always carries the data TTL. tag:{tag} carries the data TTL
    too, but with CACHE_TAG_TTL_EXTEND_ONLY its expiry is only ever pushed
    later (EXPIRE NX, then EXPIRE GT), so a short-lived member cannot shorten
    the discoverability of a longer-lived one.

Invalidation is best-effort, tag by tag: a failure on one tag is logged and
the remaining tags are still processed.
"""

from collections.abc import Iterable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from tagcache.core.config.constants import REDIS_KEY_TAG_PREFIX, REDIS_KEY_TAGS_OF_PREFIX, Stage
from tagcache.core.config.settings import CacheSettings
from tagcache.core.exceptions import CacheError
from tagcache.core.interfaces import Serializer
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.kv_adapter import KeyValueAdapter

logger = get_logger(__name__)


def tag_key(tag: str) -> str:
    """Redis key of keysOf(tag)."""
    return f"{REDIS_KEY_TAG_PREFIX}{tag}"


def tags_of_key(key: str) -> str:
    """Redis key of tagsOf(key)."""
    return f"{REDIS_KEY_TAGS_OF_PREFIX}{key}"


def normalize_tags(tags: Iterable[str] | str | None) -> list[str]:
    """Deduplicate (keeping order) and drop empty tags; a bare string is one tag."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = [tags]
    return [tag for tag in dict.fromkeys(tags) if tag]


class TagIndex:
    """
    Bidirectional key ↔ tag index riding on the adapter's primitives.

    Usage:
        await tags.set_with_tags("events:upcoming:1:10", page, ["events", "event:42"], ttl=300)
        await tags.invalidate_by_tags(["event:42"])
    """

    def __init__(self, adapter: KeyValueAdapter, settings: CacheSettings):
        self._kv = adapter
        self._extend_only = settings.CACHE_TAG_TTL_EXTEND_ONLY

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def set_with_tags(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] | str | None,
        ttl: int | None = None,
        serializer: Serializer | None = None,
    ) -> bool:
        """
        Write a value and register it under every tag.

        STAGE-TAG.SET

        Returns:
            True only if the data key and all index entries were written
        """
        tag_list = normalize_tags(tags)
        if not tag_list:
            return await self._kv.set(key, value, ttl, serializer)

        client = self._kv.ready_client(Stage.TAG_SET)
        if client is None:
            return False

        expiry = self._kv.resolve_ttl(ttl, Stage.TAG_SET, key)
        if expiry is None:
            return False

        try:
            self._kv.check_key(key)
            payload = self._kv.encode(value, serializer)
        except CacheError as e:
            self._kv.report_failure(Stage.TAG_SET, "Tagged set rejected", e, key=key, tags=tag_list)
            return False

        reverse_key = tags_of_key(key)
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(key, payload, ex=expiry)
                # Entries are replaced wholesale, tags included
                pipe.delete(reverse_key)
                pipe.sadd(reverse_key, *tag_list)
                pipe.expire(reverse_key, expiry)
                for tag in tag_list:
                    index_key = tag_key(tag)
                    pipe.sadd(index_key, key)
                    if self._extend_only:
                        pipe.expire(index_key, expiry, nx=True)
                        pipe.expire(index_key, expiry, gt=True)
                    else:
                        pipe.expire(index_key, expiry)
                await pipe.execute()
        except ResponseError as e:
            self._kv.report_failure(Stage.TAG_SET, "Tagged set failed, compensating", e, key=key, tags=tag_list)
            await self._compensate(client, key, reverse_key)
            return False
        except RedisError as e:
            self._kv.report_failure(Stage.TAG_SET, "Tagged set failed", e, key=key, tags=tag_list)
            return False

        self._kv.counters.sets += 1
        log_stage(logger, Stage.TAG_SET, "Cache set with tags", level="debug", key=key, tags=tag_list, ttl=expiry)
        return True

    async def _compensate(self, client: redis.Redis, key: str, reverse_key: str) -> None:
        try:
            await client.delete(key, reverse_key)
        except RedisError as e:
            log_stage(
                logger,
                Stage.TAG_SET,
                "Compensating delete failed, data key may be untagged until it expires",
                level="warning",
                key=key,
                error=str(e),
            )

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def invalidate_by_tags(self, tags: Iterable[str] | str) -> bool:
        """
        Delete every key carrying any of the given tags.

        STAGE-TAG.INVALIDATE

        Per tag: read keysOf(tag), delete the data keys, their tagsOf entries
        and keysOf(tag) itself, then drop the deleted keys from sibling tag
        sets. Unknown tags are a no-op.

        Returns:
            False if Redis is not ready or every tag failed, True otherwise
        """
        tag_list = normalize_tags(tags)

        client = self._kv.ready_client(Stage.TAG_INVALIDATE)
        if client is None:
            return False

        if not tag_list:
            return True

        removed = 0
        failed: list[str] = []
        for tag in tag_list:
            try:
                removed += await self._invalidate_tag(client, tag)
            except RedisError as e:
                failed.append(tag)
                self._kv.report_failure(Stage.TAG_INVALIDATE, "Tag invalidation failed", e, tag=tag)

        log_stage(
            logger,
            Stage.TAG_INVALIDATE,
            "Cache invalidated by tags",
            level="warning" if failed else "debug",
            tags=tag_list,
            keys_removed=removed,
            failed_tags=failed,
        )
        return len(failed) < len(tag_list)

    async def _invalidate_tag(self, client: redis.Redis, tag: str) -> int:
        index_key = tag_key(tag)
        members = await client.smembers(index_key)
        if not members:
            return 0

        keys = sorted(members)
        reverse_keys = [tags_of_key(key) for key in keys]

        # Sibling tags must be read before the reverse index is dropped
        async with client.pipeline(transaction=False) as pipe:
            for reverse_key in reverse_keys:
                pipe.smembers(reverse_key)
            sibling_sets = await pipe.execute()

        async with client.pipeline(transaction=True) as pipe:
            pipe.delete(*keys, *reverse_keys, index_key)
            for key, siblings in zip(keys, sibling_sets):
                for sibling in siblings or ():
                    if sibling != tag:
                        pipe.srem(tag_key(sibling), key)
            await pipe.execute()

        self._kv.counters.deletes += len(keys)
        return len(keys)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    async def tags_of(self, key: str) -> set[str]:
        """Tags currently attached to a key (empty set on miss or failure)."""
        return await self._members(tags_of_key(key), key=key)

    async def keys_of(self, tag: str) -> set[str]:
        """Keys currently registered under a tag (empty set on miss or failure)."""
        return await self._members(tag_key(tag), tag=tag)

    async def _members(self, index_key: str, **fields) -> set[str]:
        client = self._kv.ready_client(Stage.TAG_SET)
        if client is None:
            return set()
        try:
            return set(await client.smembers(index_key))
        except RedisError as e:
            self._kv.report_failure(Stage.TAG_SET, "Tag index read failed", e, **fields)
            return set()
