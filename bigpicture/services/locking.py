"""Redis-backed "batch in progress" lock."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog

from bigpicture.services.reconciliation.errors import BatchInProgressError

logger = structlog.get_logger(__name__)

BATCH_LOCK_KEY = "lock:movie-stats-batch"

# Delete only if we still own the lock
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class BatchLock:
    """
    SET NX EX lock with an owner token.

    The TTL bounds how long a crashed run can block the next one.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str = BATCH_LOCK_KEY,
        ttl_seconds: int = 3600,
    ):
        self.redis = redis_client
        self.key = key
        self.ttl_seconds = ttl_seconds
        self._token: str | None = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        acquired = await self.redis.set(self.key, token, nx=True, ex=self.ttl_seconds)
        if acquired:
            self._token = token
            logger.debug("batch_lock_acquired", key=self.key, ttl=self.ttl_seconds)
        return bool(acquired)

    async def release(self) -> None:
        if self._token is None:
            return
        token, self._token = self._token, None
        released = await self.redis.eval(_RELEASE_LUA, 1, self.key, token)
        if not released:
            logger.warning("batch_lock_lost", key=self.key)

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        """
        Hold the lock for the duration of the block.

        Raises:
            BatchInProgressError: If another run holds the lock
        """
        if not await self.acquire():
            raise BatchInProgressError("A movie stats batch is already running")
        try:
            yield
        finally:
            await self.release()
