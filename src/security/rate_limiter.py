"""Per-user fixed-window request limits in Redis.

One counter per (user, action) lives for one window. INCR, EXPIRE NX and
TTL go out in a single MULTI so the counter always gets its expiry, even
when two requests open the window at the same time.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis

from src.db.engine import redis_client

logger = logging.getLogger(__name__)


def rate_key(user_id: str, action: str) -> str:
    return f"rate:{user_id}:{action}"


class RateLimiter:
    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Count one request against `key`.

        Returns (allowed, retry_after). retry_after is 0 when allowed,
        otherwise the seconds until the window resets (at least 1).
        Redis errors allow the request.
        """
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, window, nx=True)
                pipe.ttl(key)
                count, _, ttl = await pipe.execute()
        except Exception:
            logger.exception("Rate limiter unavailable for %s, allowing request", key)
            return True, 0

        if count > limit:
            logger.info("Rate limit hit for %s (%d/%d)", key, count, limit)
            return False, max(ttl, 1)
        return True, 0


rate_limiter = RateLimiter(redis_client)
