from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import LockError, RedisError

from .errors import ConcurrencyConflict
from .roles import Role


class RoleLease:
    def __init__(self, lock, name: str):
        self._lock = lock
        self.name = name

    async def ensure_held(self) -> None:
        """Raise ConcurrencyConflict if the lock expired while the critical section was running."""
        if not await self._lock.owned():
            raise ConcurrencyConflict(f"Lost lock {self.name} before commit")


class RoleLockGuard:
    """
    Keyed mutex per (organization, role), stored in Redis so every service
    instance sees the same lock.
    """

    def __init__(self, redis, lock_timeout: float = 30.0, wait_timeout: float = 5.0, prefix: str = "settlement:lock"):
        self.redis = redis
        self.lock_timeout = lock_timeout
        self.wait_timeout = wait_timeout
        self.prefix = prefix

    def lock_name(self, organization_id: str, role: Role) -> str:
        return f"{self.prefix}:{organization_id}:{role.key}"

    @asynccontextmanager
    async def hold(self, organization_id: str, role: Role) -> AsyncIterator[RoleLease]:
        name = self.lock_name(organization_id, role)
        lock = self.redis.lock(name, timeout=self.lock_timeout, blocking_timeout=self.wait_timeout)
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logging.warning(f"Lock service unavailable for {name}: {e!r}")
            raise ConcurrencyConflict("Lock service unavailable, retry later") from e
        if not acquired:
            logging.warning(f"Timed out waiting for lock {name}")
            raise ConcurrencyConflict("Another withdrawal for this role is in progress, retry later")

        try:
            yield RoleLease(lock, name)
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Expired on its own; the critical section checked ownership before committing
                logging.warning(f"Could not release lock {name}: {e}")
