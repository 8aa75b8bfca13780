"""Read-through cache for the public course catalog.

Flow:  request -> cache -> miss -> store -> populate cache -> return
       request -> cache -> hit  -> return

Only anonymous catalog reads are cached (keys under ``catalog:``); the
response is the same for every anonymous caller, and privileged callers
see statuses the public must not.

Two invalidation strategies cover each other:

  1. TTL: every entry expires after SETTINGS.catalog_cache_ttl seconds.
  2. Explicit: any mutation that changes what the catalog shows (course
     content or status, categories, student counts, ratings) drops every
     ``catalog:*`` entry via ``invalidate_catalog``.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from app.core.metrics import CACHE_OPERATIONS
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

CATALOG_PREFIX = "catalog:"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g., 'catalog:*')."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests; no TTL enforcement.

    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        keys_to_delete = [k for k in self._store if k.startswith(prefix)]
        for k in keys_to_delete:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared across all API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server while it walks the keyspace
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


def catalog_key(**params: object) -> str:
    """Stable key for one catalog query, e.g. ``catalog:courses:level=beginner``."""
    parts = [f"{k}={v}" for k, v in sorted(params.items()) if v is not None and v != ""]
    return f"{CATALOG_PREFIX}courses:" + "&".join(parts)


async def cached_get(key: str) -> str | None:
    value = await cache_service.get(key)
    CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
    return value


async def invalidate_catalog() -> None:
    await cache_service.delete_pattern(f"{CATALOG_PREFIX}*")
    logger.debug("Catalog cache invalidated")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
