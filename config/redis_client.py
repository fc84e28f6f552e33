"""
config/redis_client.py
Optional async Redis client for the catalog cache and unauthenticated
rate limiting. Everything here fails open: without Redis the API still serves.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from config.settings import settings

logger = logging.getLogger(__name__)


# ── Global client (initialized on startup) ───────────────────
redis_client: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    """Initialize the Redis connection pool if REDIS_URL is configured."""
    global redis_client
    if not settings.REDIS_URL:
        logger.info("REDIS_URL not set; cache and rate limiting disabled")
        return

    client = aioredis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    try:
        await client.ping()
    except aioredis.RedisError as exc:
        logger.warning(f"Redis unavailable, continuing without it: {exc}")
        await client.aclose()
        return
    redis_client = client


async def close_redis() -> None:
    """Close Redis connection pool."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


def get_cache() -> Optional["RedisCache"]:
    """FastAPI dependency: a RedisCache, or None when Redis is not running."""
    if redis_client is None:
        return None
    return RedisCache(redis_client)


# ── Cache Helpers ─────────────────────────────────────────────
class RedisCache:
    """Helper class for common Redis caching patterns."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self.client.get(key)
        except aioredis.RedisError as exc:
            logger.warning(f"Cache read failed for {key}: {exc}")
            return None
        if value:
            return json.loads(value)
        return None

    async def set(self, key: str, value: Any, ttl: int = settings.REDIS_CACHE_TTL) -> None:
        try:
            await self.client.setex(key, ttl, json.dumps(value, default=str))
        except aioredis.RedisError as exc:
            logger.warning(f"Cache write failed for {key}: {exc}")

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern."""
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                return await self.client.delete(*keys)
        except aioredis.RedisError as exc:
            logger.warning(f"Cache invalidation failed for {pattern}: {exc}")
        return 0

    # ── Rate Limiting ─────────────────────────────────────────
    async def check_rate_limit(self, key: str, limit: int, window_seconds: int = 60) -> bool:
        """
        Fixed-window rate limiter keyed per caller.
        The TTL is set only by the request that opens the window, so the
        counter resets window_seconds after the first hit.
        Returns True if request is allowed, False if rate limited.
        """
        count = await self.client.incr(key)
        if count == 1:
            await self.client.expire(key, window_seconds)
        return count <= limit
