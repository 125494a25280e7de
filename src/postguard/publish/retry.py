"""Status classification and the bounded retry loop for platform sends.

Retried: network errors, 408, 429 without a stated reset, and 5xx.  Every
other 4xx is terminal on first sight, as is a 429 that states when the
quota resets (waiting it out is the caller's decision, not ours).
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from postguard.errors import PlatformHTTPError, TransportError
from postguard.publish.result import ErrorKind
from postguard.publish.transport.base import TransportResponse

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

# Backoff before attempt 2, 3, ... in seconds.
RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 4.0)

# HTTP status codes that are NOT retriable (client errors except timeout/rate-limit)
_NON_RETRIABLE_4XX = set(range(400, 500)) - {408, 429}

Sleep = Callable[[float], Awaitable[None]]


def classify_status(status: int) -> ErrorKind:
    if status == 401:
        return ErrorKind.TOKEN_EXPIRED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status in (413, 422):
        return ErrorKind.CONTENT_TOO_LONG
    if status == 429:
        return ErrorKind.RATE_LIMIT_EXCEEDED
    if status == 408:
        return ErrorKind.NETWORK_ERROR
    if 500 <= status < 600:
        return ErrorKind.SERVER_ERROR
    if 400 <= status < 500:
        return ErrorKind.BAD_REQUEST
    return ErrorKind.UNKNOWN_ERROR


def is_retryable_status(status: int, stated_reset: str | None = None) -> bool:
    if status == 429:
        return stated_reset is None
    if status in _NON_RETRIABLE_4XX:
        return False
    return status == 408 or 500 <= status < 600


def find_reset(response: TransportResponse, reset_headers: Iterable[str]) -> str | None:
    """Return the first stated reset header value, verbatim."""
    for name in reset_headers:
        value = response.header(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and backoff schedule.

    ``jitter`` adds up to that fraction of each delay at random.
    """

    max_attempts: int = MAX_ATTEMPTS
    delays: tuple[float, ...] = RETRY_DELAYS
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay after failed *attempt* (1-based), before the next one."""
        if not self.delays:
            return 0.0
        base = self.delays[min(attempt, len(self.delays)) - 1]
        if self.jitter:
            base += base * self.jitter * rng()
        return base


DEFAULT_RETRY_POLICY = RetryPolicy()


async def send_with_retry(
    call: Callable[[], Awaitable[TransportResponse]],
    *,
    describe_error: Callable[[TransportResponse], str],
    reset_headers: Iterable[str] = (),
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Sleep = asyncio.sleep,
    label: str = "request",
) -> TransportResponse:
    """Run *call* until it returns a 2xx response or retries are exhausted.

    Returns:
        The first successful response.

    Raises:
        PlatformHTTPError: On a terminal status or after the last retriable
            status.  ``retryable`` tells the caller whether trying again
            later could help.
        TransportError: If the last attempt failed at the network level.
    """
    reset_headers = tuple(reset_headers)
    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            await sleep(policy.delay_for(attempt - 1))

        try:
            response = await call()
        except TransportError as exc:
            logger.debug(
                "%s attempt %d/%d failed: %s",
                label, attempt, policy.max_attempts, exc,
            )
            if attempt == policy.max_attempts:
                logger.warning("%s exhausted all %d attempts", label, policy.max_attempts)
                raise
            continue

        if response.is_success:
            return response

        stated_reset = find_reset(response, reset_headers) if response.status == 429 else None
        kind = classify_status(response.status)
        retryable = is_retryable_status(response.status, stated_reset)
        if not retryable:
            logger.warning("%s got non-retriable %d, giving up", label, response.status)
            raise PlatformHTTPError(
                response.status,
                kind.value,
                describe_error(response),
                retry_after=stated_reset,
                retryable=False,
            )
        if attempt == policy.max_attempts:
            logger.warning(
                "%s exhausted all %d attempts (last status %d)",
                label, policy.max_attempts, response.status,
            )
            raise PlatformHTTPError(
                response.status,
                kind.value,
                describe_error(response),
                retryable=True,
            )
        logger.debug(
            "%s attempt %d/%d returned %d, retrying",
            label, attempt, policy.max_attempts, response.status,
        )

    raise AssertionError("unreachable")  # pragma: no cover
