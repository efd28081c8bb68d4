"""Read-model cache for balance, list and count views.

The cache is never the system of record: every cached value is derived from
the ledger and request tables and is dropped after each lifecycle transition.
Failures are logged and treated as misses.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from leavecore.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def balance_key(employee_id: uuid.UUID, year: int) -> str:
    return f"leave:balance:{employee_id}:{year}"


def my_list_tag(employee_id: uuid.UUID) -> str:
    return f"leave:my:{employee_id}:"


def my_counts_key(employee_id: uuid.UUID) -> str:
    return f"leave:my:{employee_id}:counts"


def my_list_key(employee_id: uuid.UUID, status: str | None, offset: int, limit: int) -> str:
    return f"leave:my:{employee_id}:list:{status or 'all'}:{offset}:{limit}"


def team_list_tag(manager_id: uuid.UUID) -> str:
    return f"leave:team:{manager_id.hex}"


def team_list_key(manager_id: uuid.UUID, status: str | None, offset: int, limit: int) -> str:
    return f"leave:team:{manager_id.hex}:list:{status or 'all'}:{offset}:{limit}"


def request_details_key(request_id: uuid.UUID) -> str:
    return f"leave:req:{request_id.hex}"


ACTIVE_LEAVE_TYPES_KEY = "leave:types:active"


# ---------------------------------------------------------------------------
# Service interface and implementations
# ---------------------------------------------------------------------------


@runtime_checkable
class CacheService(Protocol):
    """Key/value cache with TTL and tag-based bulk invalidation."""

    async def get(self, key: str) -> str | None:
        """Return the cached value or None."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None, tags: Iterable[str] = ()) -> None:
        """Store a value, optionally expiring and grouped under tags."""
        ...

    async def remove(self, key: str) -> None:
        """Drop a single key."""
        ...

    async def invalidate_by_tag(self, tag: str) -> int:
        """Drop every key stored under the tag. Returns the number removed."""
        ...


class InMemoryCacheService:
    """Process-local cache for development and tests."""

    def __init__(self) -> None:
        self._values: dict[str, tuple[str, float | None]] = {}
        self._tags: dict[str, set[str]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._values[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None, tags: Iterable[str] = ()) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        self._values[key] = (value, expires_at)
        for tag in tags:
            self._tags.setdefault(tag, set()).add(key)

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)

    async def invalidate_by_tag(self, tag: str) -> int:
        keys = self._tags.pop(tag, set())
        removed = 0
        for key in keys:
            if self._values.pop(key, None) is not None:
                removed += 1
        return removed


class RedisCacheService:
    """Redis-backed cache. Each tag is a Redis set holding the keys stored under it."""

    _TAG_PREFIX = "tag:"

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCacheService:
        from redis.asyncio import Redis

        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        return None if value is None else str(value)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None, tags: Iterable[str] = ()) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(key, value, ex=ttl_seconds)
            for tag in tags:
                pipe.sadd(self._TAG_PREFIX + tag, key)
                if ttl_seconds:
                    pipe.expire(self._TAG_PREFIX + tag, ttl_seconds)
            await pipe.execute()

    async def remove(self, key: str) -> None:
        await self._client.delete(key)

    async def invalidate_by_tag(self, tag: str) -> int:
        tag_key = self._TAG_PREFIX + tag
        keys = await self._client.smembers(tag_key)
        removed = 0
        if keys:
            removed = int(await self._client.delete(*keys))
        await self._client.delete(tag_key)
        return removed


_cache_service: CacheService | None = None


def get_cache_service() -> CacheService:
    """Return the configured cache, creating it from settings on first use."""
    global _cache_service
    if _cache_service is None:
        settings = get_settings()
        if settings.redis_url:
            _cache_service = RedisCacheService.from_url(settings.redis_url)
        else:
            _cache_service = InMemoryCacheService()
    return _cache_service


def set_cache_service(service: CacheService | None) -> None:
    """Override the cache (for testing or production wiring)."""
    global _cache_service
    _cache_service = service


# ---------------------------------------------------------------------------
# Best-effort helpers used by the read views and lifecycle use cases
# ---------------------------------------------------------------------------


async def read_cached(key: str, model: type[ModelT]) -> ModelT | None:
    """Return the cached model for key, or None on a miss or any cache failure."""
    try:
        raw = await get_cache_service().get(key)
    except Exception:
        logger.warning("Cache read failed for %s", key, exc_info=True)
        return None
    if raw is None:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError:
        logger.warning("Discarding unreadable cache entry %s", key)
        return None


async def write_cached(key: str, value: BaseModel, tags: Iterable[str] = ()) -> None:
    """Store a model in the cache; failures are logged and ignored."""
    try:
        await get_cache_service().set(
            key, value.model_dump_json(), ttl_seconds=get_settings().cache_ttl_seconds, tags=tags
        )
    except Exception:
        logger.warning("Cache write failed for %s", key, exc_info=True)


async def invalidate(keys: Iterable[str] = (), tags: Iterable[str] = ()) -> None:
    """Drop keys and tags. Never raises."""
    cache = get_cache_service()
    for key in keys:
        try:
            await cache.remove(key)
        except Exception:
            logger.warning("Cache invalidation failed for key %s", key, exc_info=True)
    for tag in tags:
        try:
            await cache.invalidate_by_tag(tag)
        except Exception:
            logger.warning("Cache invalidation failed for tag %s", tag, exc_info=True)
