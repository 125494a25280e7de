"""Pipeline configuration from environment variables."""

from __future__ import annotations

import logging
import os
from typing import Mapping

from postguard.errors import ConfigurationError
from postguard.publish.retry import MAX_ATTEMPTS, RETRY_DELAYS, RetryPolicy
from postguard.ratelimit.config import OperationClass, RateLimitPolicy, parse_policy

ENV_PREFIX = "POSTGUARD_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


def _parse_number(name: str, value: str, kind: type) -> float | int:
    try:
        return kind(value.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a {kind.__name__}, got {value!r}") from None


class Settings:
    """Pipeline settings, read from ``POSTGUARD_*`` environment variables with defaults.

    Pass *environ* to read from a mapping other than ``os.environ`` (tests).
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        self.log_level: str = get("LOG_LEVEL", "INFO").upper()
        self.debug: bool = _parse_bool(get("DEBUG", ""))
        self.database_url: str = get("DATABASE_URL", "sqlite+aiosqlite:///postguard.db")
        self.redis_url: str | None = get("REDIS_URL", "") or None
        self.http_timeout: float = _parse_number(
            "POSTGUARD_HTTP_TIMEOUT", get("HTTP_TIMEOUT", "30.0"), float
        )

        # Retry settings
        self.max_attempts: int = _parse_number(
            "POSTGUARD_MAX_ATTEMPTS", get("MAX_ATTEMPTS", str(MAX_ATTEMPTS)), int
        )
        delays = get("RETRY_DELAYS", ",".join(str(d) for d in RETRY_DELAYS))
        self.retry_delays: tuple[float, ...] = tuple(
            _parse_number("POSTGUARD_RETRY_DELAYS", part, float)
            for part in delays.split(",")
            if part.strip()
        )
        self.retry_jitter: float = _parse_number(
            "POSTGUARD_RETRY_JITTER", get("RETRY_JITTER", "0"), float
        )
        self.inter_segment_delay: float | None = (
            _parse_number(
                "POSTGUARD_INTER_SEGMENT_DELAY", get("INTER_SEGMENT_DELAY", ""), float
            )
            if get("INTER_SEGMENT_DELAY", "").strip()
            else None
        )

        # Rate limiting
        fail_closed = get("FAIL_CLOSED", "")
        try:
            self.fail_closed_classes: frozenset[OperationClass] = frozenset(
                OperationClass(part.strip().lower())
                for part in fail_closed.split(",")
                if part.strip()
            )
        except ValueError as exc:
            raise ConfigurationError(f"POSTGUARD_FAIL_CLOSED: {exc}") from None
        self.rate_limits: dict[OperationClass, RateLimitPolicy] = {}
        for operation in OperationClass:
            value = get(f"RATE_LIMIT_{operation.name}", "")
            if value.strip():
                self.rate_limits[operation] = parse_policy(operation, value)

    @property
    def retry_policy(self) -> RetryPolicy:
        try:
            return RetryPolicy(
                max_attempts=self.max_attempts,
                delays=self.retry_delays,
                jitter=self.retry_jitter,
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from None


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
    if settings.debug:
        logging.getLogger("postguard").setLevel(logging.DEBUG)
