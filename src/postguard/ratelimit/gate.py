"""Admission gate in front of metered operations.

The gate is fail-open: if the counter service raises, the request is admitted
and the decision is marked ``degraded``.  Operation classes listed in
``fail_closed`` are rejected instead.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

from postguard.ratelimit.config import IdentityKind, OperationClass, RateLimitPolicy, get_policy
from postguard.ratelimit.counter import RateLimitDecision

if TYPE_CHECKING:
    from postguard.ports import CounterService

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = "127.0.0.1"


class RateLimiter:
    """Check an identity against the policy for an operation class."""

    def __init__(
        self,
        counter: CounterService,
        policies: Mapping[OperationClass, RateLimitPolicy] | None = None,
        fail_closed: Iterable[OperationClass | str] = (),
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._counter = counter
        self._policies = dict(policies or {})
        self._fail_closed = frozenset(OperationClass(op) for op in fail_closed)
        self._wall_clock = wall_clock

    def policy_for(self, operation: OperationClass | str) -> RateLimitPolicy:
        return get_policy(operation, self._policies)

    async def check(
        self, identity: str, operation: OperationClass | str
    ) -> RateLimitDecision:
        policy = self.policy_for(operation)
        try:
            return await self._counter.check(identity, policy)
        except Exception as exc:
            now_ms = int(self._wall_clock() * 1000)
            if policy.operation in self._fail_closed:
                logger.error(
                    "Rate limit check failed for %s; rejecting (fail-closed): %s",
                    policy.operation.value,
                    exc,
                )
                return RateLimitDecision(
                    allowed=False,
                    limit=policy.limit,
                    remaining=0,
                    reset_at_ms=now_ms + policy.window_ms,
                    degraded=True,
                )
            logger.warning(
                "Rate limit check failed for %s; allowing (fail-open): %s",
                policy.operation.value,
                exc,
            )
            return RateLimitDecision(
                allowed=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at_ms=now_ms,
                degraded=True,
            )

    async def aclose(self) -> None:
        close = getattr(self._counter, "close", None)
        if close is not None:
            await close()


def resolve_identity(
    user_id: str | None = None,
    headers: Mapping[str, str] | None = None,
    policy: RateLimitPolicy | None = None,
) -> str:
    """Pick the rate-limit identity for a request.

    A user id wins over any network address unless *policy* is keyed on
    :attr:`IdentityKind.NETWORK`.  The network address is the first
    ``X-Forwarded-For`` hop, then ``X-Real-IP``, then the loopback address.
    """
    if user_id and (policy is None or policy.identity is not IdentityKind.NETWORK):
        return user_id
    lowered = {key.lower(): value for key, value in (headers or {}).items()}
    forwarded = lowered.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = lowered.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return DEFAULT_IDENTITY
