"""Async Redis client for the durable session backend."""

from functools import lru_cache

import redis.asyncio as aioredis

from libshare.core.config import settings

# Redis key prefix for session records
SESSION_KEY_PREFIX = "session:"


@lru_cache()
def get_redis() -> aioredis.Redis:
    """Return the process-wide Redis client (connections are pooled lazily)."""
    return aioredis.from_url(settings.redis_url, decode_responses=True)
