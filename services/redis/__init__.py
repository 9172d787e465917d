from __future__ import annotations
import redis.asyncio as aioredis
from config import ENV

from services.settlement.guard import RoleLockGuard


class RedisClient:
    def __init__(self):
        self.env = ENV()
        self.url = self.env.redis_url
        self.redis = aioredis.from_url(self.url, decode_responses=True)

    def role_guard(self) -> RoleLockGuard:
        return RoleLockGuard(
            self.redis,
            lock_timeout=self.env.WITHDRAWAL_LOCK_TIMEOUT_SECONDS,
            wait_timeout=self.env.WITHDRAWAL_LOCK_WAIT_SECONDS,
        )
