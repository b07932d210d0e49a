"""Redis-backed session store.

Sessions outlive process restarts and are shared by every worker pointed at
the same Redis. Each record expires together with its cookie.
"""

import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as aioredis

from libshare.core.redis_client import SESSION_KEY_PREFIX
from libshare.domain.entities import Session
from libshare.domain.repositories import ISessionStore
from libshare.infrastructure.sessions.memory import new_token

logger = logging.getLogger(__name__)


class RedisSessionStore(ISessionStore):

    def __init__(self, client: aioredis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def create(self, user_id: int) -> Session:
        session = Session(id=new_token(), user_id=user_id)
        key = f"{SESSION_KEY_PREFIX}{session.id}"
        await self.client.hset(
            key,
            mapping={"user_id": str(user_id), "created_at": session.created_at.isoformat()},
        )
        await self.client.expire(key, self.ttl_seconds)
        logger.debug("Session stored in Redis for user %s", user_id)
        return session

    async def get(self, token: str) -> Optional[Session]:
        data = await self.client.hgetall(f"{SESSION_KEY_PREFIX}{token}")
        if not data:
            return None
        return Session(
            id=token,
            user_id=int(data["user_id"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    async def delete(self, token: str) -> bool:
        return await self.client.delete(f"{SESSION_KEY_PREFIX}{token}") == 1
