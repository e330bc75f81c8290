"""Rate limiter for outbound movie data API requests.

Token bucket shared through Redis so the web process and the Celery worker
draw from the same budget per API.
"""

import asyncio
import time

import redis.asyncio as redis
import structlog

logger = structlog.get_logger(__name__)

# Atomic token bucket: returns {acquired, wait_seconds}
_TOKEN_BUCKET_LUA = """
local key = KEYS[1]
local rate = tonumber(ARGV[1])
local burst = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local refill_interval = tonumber(ARGV[4])

local state = redis.call('HMGET', key, 'tokens', 'last_update')
local tokens = tonumber(state[1]) or burst
local last_update = tonumber(state[2]) or now

local elapsed = now - last_update
tokens = math.min(burst, tokens + elapsed * rate)

if tokens >= 1 then
    tokens = tokens - 1
    redis.call('HSET', key, 'tokens', tokens, 'last_update', now)
    redis.call('EXPIRE', key, 60)
    return {1, 0}
else
    return {0, tostring(refill_interval - (elapsed % refill_interval))}
end
"""


class SourceRateLimiter:
    """
    Token bucket rate limiter using Redis.

    Fails open: if Redis is unavailable the request is allowed.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        rate: float = 5.0,
        burst: int = 10,
        key_prefix: str = "ratelimit:sources",
        max_wait: float = 10.0,
    ):
        """
        Initialize the rate limiter.

        Args:
            redis_client: Redis client for distributed state
            rate: Requests per second allowed
            burst: Maximum burst size
            key_prefix: Redis key prefix
            max_wait: Give up waiting after this many seconds
        """
        self.redis = redis_client
        self.rate = rate
        self.burst = burst
        self.key_prefix = key_prefix
        self.max_wait = max_wait
        self.refill_interval = 1.0 / rate

    def _get_key(self, source: str) -> str:
        return f"{self.key_prefix}:{source}"

    async def acquire(self, source: str = "default") -> bool:
        """
        Try to acquire a token for the given API.

        Returns:
            True if token acquired, False if rate limited
        """
        try:
            result = await self.redis.eval(
                _TOKEN_BUCKET_LUA,
                1,
                self._get_key(source),
                str(self.rate),
                str(self.burst),
                str(time.time()),
                str(self.refill_interval),
            )
        except redis.RedisError as e:
            logger.error("rate_limiter_error", error=str(e), source=source)
            return True

        acquired = int(result[0]) == 1
        if not acquired:
            logger.debug("rate_limited", source=source, wait_time=result[1])
        return acquired

    async def wait_if_needed(self, source: str = "default") -> None:
        """Block until a token is available or max_wait elapses."""
        total_wait = 0.0

        while not await self.acquire(source):
            if total_wait >= self.max_wait:
                logger.warning(
                    "rate_limiter_max_wait_exceeded",
                    source=source,
                    total_wait=total_wait,
                )
                break
            wait_time = min(0.1, self.max_wait - total_wait)
            await asyncio.sleep(wait_time)
            total_wait += wait_time
