"""Cache-aside helpers on top of Valkey.

Values are stored as JSON. Cache failures are logged and treated as misses
so a Valkey outage degrades read latency, never correctness.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Optional, Union

from app.core.config import settings
from app.core.logging import get_logger

from .client import get_valkey_client

logger = get_logger("cache")

# Cache key prefixes for namespacing
CACHE_PREFIX = "marketday"
CACHE_VERSION = "v1"


def cache_key(*parts: Union[str, int, float], prefix: str = "cache") -> str:
    """
    Generate a consistent cache key from parts.

    Usage:
        cache_key("day", 3) -> "marketday:v1:cache:day:3"
    """
    sanitized = [str(part).replace(":", "_") for part in parts]
    return f"{CACHE_PREFIX}:{CACHE_VERSION}:{prefix}:{':'.join(sanitized)}"


def _serialize(value: Any) -> str:
    return json.dumps(value, default=str)


def _deserialize(value: str) -> Any:
    return json.loads(value)


class Cache:
    """Typed cache wrapper bound to one key prefix."""

    def __init__(self, prefix: str = "cache", default_ttl: Optional[int] = None):
        self.prefix = prefix
        self.default_ttl = settings.cache_default_ttl if default_ttl is None else default_ttl

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            value = await client.get(full_key)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        if value is None:
            logger.debug(f"Cache miss: {full_key}")
            return None
        logger.debug(f"Cache hit: {full_key}")
        return _deserialize(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL. A TTL of 0 disables storing."""
        effective_ttl = self.default_ttl if ttl is None else ttl
        if effective_ttl <= 0:
            return True

        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            await client.set(full_key, _serialize(value), ex=effective_ttl)
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")
            return False
        logger.debug(f"Cache set: {full_key}, TTL: {effective_ttl}s")
        return True

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            await client.delete(full_key)
        except Exception as e:
            logger.warning(f"Cache delete failed: {e}")
            return False
        logger.debug(f"Cache delete: {full_key}")
        return True

    async def invalidate(self) -> int:
        """Drop every key under this cache's prefix."""
        return await invalidate_pattern(f"{self.prefix}:")

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """Get from cache or compute and cache value (cache-aside pattern)."""
        value = await self.get(key)
        if value is not None:
            return value

        if asyncio.iscoroutinefunction(factory):
            value = await factory()
        else:
            value = factory()

        if value is not None:
            await self.set(key, value, ttl)

        return value


async def invalidate_pattern(pattern: str) -> int:
    """Invalidate all keys matching a pattern."""
    full_pattern = f"{CACHE_PREFIX}:{CACHE_VERSION}:*{pattern}*"
    try:
        client = await get_valkey_client()
        keys = [key async for key in client.scan_iter(match=full_pattern, count=100)]
        if keys:
            await client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} keys matching: {pattern}")
        return len(keys)
    except Exception as e:
        logger.warning(f"Pattern invalidation failed: {e}")
        return 0
