from __future__ import annotations

import logging
import uuid
from datetime import timedelta

import redis.asyncio as redis
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .. import models
from ..domain.repositories import LockRepository
from ..utils.time import to_utc_naive, utc_now

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL_SECONDS = 10

# Delete the key only while it still holds our token.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class SqlAlchemyLockRepository(LockRepository):
    """
    Row-per-key lock in `booking_locks`.

    Each call runs in its own short transaction, independent of the request session,
    so other workers see the lock immediately. A row past `expires_at` belongs to a
    holder that never released it and is taken over. Every acquire writes a fresh
    owner token, and release deletes the row only if that token is still there, so a
    holder that outlived its expiry cannot drop the lock of whoever took over.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
    ) -> None:
        self.session_factory = session_factory
        self.ttl = timedelta(seconds=ttl_seconds)
        self._tokens: dict[str, str] = {}

    async def acquire(self, key: str) -> bool:
        now = to_utc_naive(utc_now())
        token = uuid.uuid4().hex
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    lock = await session.get(models.BookingLock, key, with_for_update=True)
                    if lock is not None and lock.expires_at > now:
                        return False
                    if lock is None:
                        session.add(
                            models.BookingLock(
                                lock_key=key,
                                owner=token,
                                acquired_at=now,
                                expires_at=now + self.ttl,
                            )
                        )
                    else:
                        logger.warning("taking over expired lock key=%s expired_at=%s", key, lock.expires_at)
                        lock.owner = token
                        lock.acquired_at = now
                        lock.expires_at = now + self.ttl
        except IntegrityError:
            # Another worker inserted the same key first.
            return False
        self._tokens[key] = token
        return True

    async def release(self, key: str) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(models.BookingLock).where(
                        models.BookingLock.lock_key == key,
                        models.BookingLock.owner == token,
                    )
                )
        if result.rowcount == 0:
            logger.warning("lock key=%s expired and was taken over before release", key)


class RedisLockRepository(LockRepository):
    """`SET key token NX PX ttl` lock; Redis expires abandoned keys on its own."""

    def __init__(self, client: redis.Redis, *, ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS) -> None:
        self.client = client
        self.ttl_ms = ttl_seconds * 1000
        self._tokens: dict[str, str] = {}

    async def acquire(self, key: str) -> bool:
        token = uuid.uuid4().hex
        acquired = await self.client.set(key, token, nx=True, px=self.ttl_ms)
        if acquired:
            self._tokens[key] = token
        return bool(acquired)

    async def release(self, key: str) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        removed = await self.client.eval(_RELEASE_SCRIPT, 1, key, token)
        if not removed:
            logger.warning("lock key=%s expired and was taken over before release", key)
