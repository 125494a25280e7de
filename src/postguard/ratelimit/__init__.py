"""Sliding-window rate limiting with a fail-open admission gate."""

from postguard.ratelimit.config import (
    RATE_LIMITS,
    IdentityKind,
    OperationClass,
    RateLimitPolicy,
    get_policy,
    parse_policy,
    parse_window,
)
from postguard.ratelimit.counter import (
    InMemoryCounterService,
    RateLimitDecision,
    SlidingWindowCounter,
)
from postguard.ratelimit.gate import RateLimiter, resolve_identity

__all__ = [
    "RATE_LIMITS",
    "IdentityKind",
    "InMemoryCounterService",
    "OperationClass",
    "RateLimitDecision",
    "RateLimitPolicy",
    "RateLimiter",
    "SlidingWindowCounter",
    "get_policy",
    "parse_policy",
    "parse_window",
    "resolve_identity",
]
