"""Retry logic for transient database errors.

Provides a decorator that catches SQLAlchemy operational errors (connection
drops, locked databases) and retries with exponential backoff.  Non-transient
errors (constraint violations, programming errors) are re-raised immediately.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES: int = 3
BASE_DELAY: float = 0.1
MAX_DELAY: float = 2.0
BACKOFF_FACTOR: float = 2.0

_TRANSIENT_PATTERNS = (
    "connection refused",
    "connection reset",
    "connection lost",
    "deadlock",
    "database is locked",
    "timeout",
    "server closed",
    "broken pipe",
)


def is_transient_error(exc: Exception) -> bool:
    """Return True for errors worth retrying (lost connections, lock waits)."""
    if isinstance(exc, OperationalError):
        msg = str(exc).lower()
        return any(p in msg for p in _TRANSIENT_PATTERNS)
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    return False


def db_retry(
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_delay: float = MAX_DELAY,
    backoff_factor: float = BACKOFF_FACTOR,
) -> Callable:
    """Decorator that retries async functions on transient DB errors.

    Usage::

        @db_retry()
        async def save(self, user_id, record) -> None:
            ...
    """

    def decorator(
        func: Callable[..., Coroutine[Any, Any, T]],
    ) -> Callable[..., Coroutine[Any, Any, T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except DBAPIError as exc:
                    if not is_transient_error(exc):
                        raise  # Non-transient -- don't retry
                    if attempt == max_retries:
                        logger.error(
                            "Transient DB error in %s exhausted %d attempts: %s",
                            func.__name__,
                            max_retries + 1,
                            exc,
                        )
                        raise
                    delay = min(base_delay * (backoff_factor**attempt), max_delay)
                    logger.warning(
                        "Transient DB error in %s (attempt %d/%d), retrying in %.2fs: %s",
                        func.__name__,
                        attempt + 1,
                        max_retries + 1,
                        delay,
                        exc,
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
