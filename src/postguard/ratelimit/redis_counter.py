"""Redis-backed sliding-window counter service.

Each identity/class pair is a sorted set whose scores are admission times in
epoch milliseconds.  One ``MULTI`` transaction prunes expired entries,
records the request, and reads the count and the oldest entry.  A request
that pushed the count over the limit is removed again, so rejected requests
never consume capacity.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable

import redis.asyncio as aioredis

from postguard.ratelimit.config import RateLimitPolicy
from postguard.ratelimit.counter import RateLimitDecision

logger = logging.getLogger(__name__)


class RedisCounterService:
    """Distributed counter shared by every worker pointing at the same Redis."""

    def __init__(
        self,
        client: aioredis.Redis,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._wall_clock = wall_clock

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisCounterService:
        return cls(aioredis.from_url(url, **kwargs))

    async def check(self, identity: str, policy: RateLimitPolicy) -> RateLimitDecision:
        key = policy.key(identity)
        window_ms = policy.window_ms
        now_ms = int(self._wall_clock() * 1000)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        async with self._client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now_ms - window_ms)
            pipe.zadd(key, {member: now_ms})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.pexpire(key, window_ms)
            _, _, count, oldest, _ = await pipe.execute()

        allowed = count <= policy.limit
        if not allowed:
            await self._client.zrem(key, member)
            logger.debug("Rate limit hit for %s (%d/%d)", key, count - 1, policy.limit)

        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        return RateLimitDecision(
            allowed=allowed,
            limit=policy.limit,
            remaining=max(0, policy.limit - count),
            reset_at_ms=oldest_ms + window_ms,
        )

    async def close(self) -> None:
        await self._client.aclose()
