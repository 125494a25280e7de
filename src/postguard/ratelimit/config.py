"""Rate-limit policies per operation class.

Window strings use ``"<n> <unit>"`` with units ``ms``, ``s``, ``m``, ``h``
or ``d`` (``"1 m"``, ``"1 h"``, ``"500 ms"``).  Policies can be overridden
from the environment with ``"<limit>/<window>"`` strings, see
:class:`postguard.config.Settings`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from postguard.errors import ConfigurationError


class OperationClass(str, Enum):
    AUTH = "auth"
    AI = "ai"
    PUBLISH = "publish"
    API_GENERAL = "api_general"
    GITHUB_ACTIVITY = "github_activity"


class IdentityKind(str, Enum):
    """Which identity a class is normally keyed on."""

    USER = "user"
    NETWORK = "network"


_UNIT_MS = {"ms": 1, "s": 1_000, "m": 60_000, "h": 3_600_000, "d": 86_400_000}
_WINDOW_RE = re.compile(r"^\s*(\d+)\s*(ms|s|m|h|d)\s*$")


def parse_window(window: str) -> int:
    """Return the length of *window* in milliseconds.

    >>> parse_window("1 h")
    3600000
    """
    match = _WINDOW_RE.match(window)
    if not match:
        raise ConfigurationError(f"Invalid rate-limit window: {window!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise ConfigurationError(f"Rate-limit window must be positive: {window!r}")
    return amount * _UNIT_MS[match.group(2)]


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most ``limit`` admissions per ``window`` for one identity."""

    operation: OperationClass
    limit: int
    window: str
    identity: IdentityKind = IdentityKind.USER
    description: str = ""

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ConfigurationError(
                f"Rate limit for {self.operation.value} must be positive, got {self.limit}"
            )
        parse_window(self.window)

    @property
    def window_ms(self) -> int:
        return parse_window(self.window)

    @property
    def prefix(self) -> str:
        return f"ratelimit:{self.operation.value}"

    def key(self, identity: str) -> str:
        return f"{self.prefix}:{identity}"


RATE_LIMITS: dict[OperationClass, RateLimitPolicy] = {
    OperationClass.AUTH: RateLimitPolicy(
        OperationClass.AUTH, 5, "1 m", IdentityKind.NETWORK,
        "Authentication attempts per minute",
    ),
    OperationClass.AI: RateLimitPolicy(
        OperationClass.AI, 10, "1 h", IdentityKind.USER,
        "AI content generations per hour per user",
    ),
    OperationClass.PUBLISH: RateLimitPolicy(
        OperationClass.PUBLISH, 20, "1 h", IdentityKind.USER,
        "Post publications per hour per user",
    ),
    OperationClass.API_GENERAL: RateLimitPolicy(
        OperationClass.API_GENERAL, 100, "1 h", IdentityKind.NETWORK,
        "General API requests per hour",
    ),
    OperationClass.GITHUB_ACTIVITY: RateLimitPolicy(
        OperationClass.GITHUB_ACTIVITY, 30, "1 h", IdentityKind.USER,
        "GitHub activity fetches per hour per user",
    ),
}


def parse_policy(operation: OperationClass | str, value: str) -> RateLimitPolicy:
    """Build a policy for *operation* from a ``"<limit>/<window>"`` string."""
    operation = OperationClass(operation)
    limit_text, sep, window = value.partition("/")
    if not sep:
        raise ConfigurationError(
            f"Rate limit for {operation.value} must look like '20/1 h', got {value!r}"
        )
    try:
        limit = int(limit_text.strip())
    except ValueError:
        raise ConfigurationError(
            f"Rate limit for {operation.value} has a non-integer count: {value!r}"
        ) from None
    default = RATE_LIMITS[operation]
    return RateLimitPolicy(operation, limit, window.strip(), default.identity, default.description)


def get_policy(
    operation: OperationClass | str,
    overrides: Mapping[OperationClass, RateLimitPolicy] | None = None,
) -> RateLimitPolicy:
    operation = OperationClass(operation)
    if overrides and operation in overrides:
        return overrides[operation]
    return RATE_LIMITS[operation]
