"""Interfaces of the collaborators the pipeline depends on.

Concrete implementations shipped with the package:

* ``CounterService``: :class:`~postguard.ratelimit.counter.InMemoryCounterService`,
  :class:`~postguard.ratelimit.redis_counter.RedisCounterService`
* ``PublishStore``: :class:`~postguard.db.store.SqlPublishStore`
* transport: :class:`~postguard.publish.transport.http.HTTPTransport`

Credential suppliers and content generators belong to the host application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from postguard.content.types import Platform, Tone
    from postguard.publish.result import PublishedRecord
    from postguard.ratelimit.config import RateLimitPolicy
    from postguard.ratelimit.counter import RateLimitDecision


@runtime_checkable
class CredentialSupplier(Protocol):
    async def get_token(self, user_id: str, platform: Platform) -> str | None:
        """Return the user's access token for *platform*, or None if not connected."""


@runtime_checkable
class ContentGenerator(Protocol):
    async def generate(self, topic: str, platform: Platform, tone: Tone) -> str:
        """Return draft post text for *topic*."""


@runtime_checkable
class PublishStore(Protocol):
    async def save(self, user_id: str, record: PublishedRecord) -> None:
        """Persist *record*.  May raise; callers decide what a failure means."""


@runtime_checkable
class CounterService(Protocol):
    async def check(self, identity: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Admit or reject one request for *identity* under *policy*."""
