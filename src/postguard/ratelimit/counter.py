"""Sliding-window admission counters.

:class:`SlidingWindowCounter` keeps a log of admission timestamps per key and
uses ``time.monotonic()`` so wall-clock adjustments cannot reopen a window.
:class:`InMemoryCounterService` wraps one counter per window length behind
the async ``check(identity, policy)`` interface shared with
:class:`postguard.ratelimit.redis_counter.RedisCounterService`.

The in-memory service is process-local.  It performs no awaits inside
``check``, so a single event loop never interleaves two checks.
"""

from __future__ import annotations

import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable

from postguard.ratelimit.config import RateLimitPolicy


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check.

    ``reset_at_ms`` is epoch milliseconds at which the oldest counted request
    leaves the window.  ``degraded`` marks a decision made without a working
    counter (fail-open or fail-closed).
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    degraded: bool = False

    def retry_after_seconds(self, now_ms: int | None = None) -> int:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(0, math.ceil((self.reset_at_ms - now_ms) / 1000))

    def retry_after_text(self, now_ms: int | None = None) -> str:
        return f"{self.retry_after_seconds(now_ms)} seconds"


@dataclass
class SlidingWindowCounter:
    """In-memory sliding-window log for one window length."""

    window_seconds: float
    clock: Callable[[], float] = time.monotonic
    _buckets: dict[str, list[float]] = field(
        default_factory=lambda: defaultdict(list),
        repr=False,
    )

    def hit(self, key: str, limit: int) -> tuple[bool, int, float]:
        """Try to admit one request for *key*.

        Prunes stale timestamps, then records a new one only if the count is
        under *limit*.  Returns ``(allowed, count, oldest)`` where *count*
        includes the new request when admitted and *oldest* is the earliest
        timestamp still in the window.
        """
        now = self.clock()
        cutoff = now - self.window_seconds
        self._buckets[key] = bucket = [ts for ts in self._buckets[key] if ts > cutoff]
        allowed = len(bucket) < limit
        if allowed:
            bucket.append(now)
        return allowed, len(bucket), bucket[0] if bucket else now

    def remaining(self, key: str, limit: int) -> int:
        cutoff = self.clock() - self.window_seconds
        current = sum(1 for ts in self._buckets.get(key, []) if ts > cutoff)
        return max(0, limit - current)

    def cleanup(self) -> None:
        """Remove keys with no recent events (prevents memory leak)."""
        cutoff = self.clock() - self.window_seconds
        empty_keys = [
            key
            for key, bucket in self._buckets.items()
            if not any(ts > cutoff for ts in bucket)
        ]
        for key in empty_keys:
            del self._buckets[key]

    def __len__(self) -> int:
        return len(self._buckets)


class InMemoryCounterService:
    """Process-local counter service, suitable for a single worker and tests."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._wall_clock = wall_clock
        self._counters: dict[int, SlidingWindowCounter] = {}

    def _counter(self, window_ms: int) -> SlidingWindowCounter:
        counter = self._counters.get(window_ms)
        if counter is None:
            counter = SlidingWindowCounter(window_ms / 1000, clock=self._clock)
            self._counters[window_ms] = counter
        return counter

    async def check(self, identity: str, policy: RateLimitPolicy) -> RateLimitDecision:
        window_ms = policy.window_ms
        counter = self._counter(window_ms)
        allowed, count, oldest = counter.hit(policy.key(identity), policy.limit)

        # Translate the monotonic expiry of the oldest entry to wall-clock ms.
        expires_in = oldest + window_ms / 1000 - self._clock()
        reset_at_ms = int((self._wall_clock() + max(0.0, expires_in)) * 1000)
        return RateLimitDecision(
            allowed=allowed,
            limit=policy.limit,
            remaining=max(0, policy.limit - count),
            reset_at_ms=reset_at_ms,
        )

    def cleanup(self) -> None:
        for counter in self._counters.values():
            counter.cleanup()

    async def close(self) -> None:
        """Nothing to release; present for interface parity with Redis."""
