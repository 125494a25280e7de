"""End-to-end publish pipeline.

Stages run in a fixed order and each one can stop the request with a
:class:`~postguard.publish.result.PublishFailure`::

    credentials -> risk audit -> sanitize -> validate -> plan
        -> rate limit -> deliver -> persist

The risk audit only logs.  Planning runs before the rate-limit check so
content that can never be published does not consume quota.  Persistence
failures are logged and never change the result of a successful publish.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping, Union

from postguard.config import Settings
from postguard.content.risk import assess, log_assessment
from postguard.content.sanitize import sanitize_post_content, sanitize_topic
from postguard.content.types import FieldKind, Platform, Tone
from postguard.content.validation import Invalid, InvalidReason, validate
from postguard.errors import ContentTooLongError, SegmentationError
from postguard.ports import ContentGenerator, CounterService, CredentialSupplier, PublishStore
from postguard.publish.adapter import PlatformAdapter
from postguard.publish.linkedin import LinkedInAdapter
from postguard.publish.result import (
    ErrorKind,
    PublishFailure,
    PublishResult,
    PublishSuccess,
    to_record,
)
from postguard.publish.transport.base import TransportBase
from postguard.publish.transport.http import HTTPTransport
from postguard.publish.twitter import TwitterAdapter
from postguard.ratelimit.config import OperationClass
from postguard.ratelimit.counter import InMemoryCounterService, RateLimitDecision
from postguard.ratelimit.gate import RateLimiter, resolve_identity

logger = logging.getLogger(__name__)


@dataclass
class PublishRequest:
    user_id: str
    platform: Platform
    content: str
    headers: Mapping[str, str] = field(default_factory=dict)
    cancel: asyncio.Event | None = None


@dataclass(frozen=True)
class Draft:
    """Generated post text, already sanitized."""

    topic: str
    content: str
    platform: Platform
    tone: Tone


DraftResult = Union[Draft, PublishFailure]


def _validation_failure(outcome: Invalid) -> PublishFailure:
    return PublishFailure(
        kind=ErrorKind.VALIDATION_FAILED,
        retryable=False,
        message=outcome.message,
        details={"field": outcome.field.value, "reason": outcome.reason.value},
    )


def _unrecognized(field: FieldKind, choices: type[Platform] | type[Tone]) -> PublishFailure:
    label = field.value.capitalize()
    return _validation_failure(
        Invalid(
            field,
            InvalidReason.UNRECOGNIZED_VALUE,
            f"{label} must be one of: {', '.join(sorted(c.value for c in choices))}",
        )
    )


def _quota_failure(decision: RateLimitDecision, operation: OperationClass) -> PublishFailure:
    return PublishFailure(
        kind=ErrorKind.QUOTA_EXCEEDED,
        retryable=False,
        message="Too many requests. Please try again later.",
        retry_after=decision.retry_after_text(),
        reset_at_ms=decision.reset_at_ms,
        details={"operation": operation.value, "limit": decision.limit},
    )


class PublishPipeline:
    """Composes the content stages, the rate limiter and the platform adapters.

    Every collaborator is injected; see :func:`build_pipeline` for the
    default wiring from :class:`~postguard.config.Settings`.
    """

    def __init__(
        self,
        credentials: CredentialSupplier,
        rate_limiter: RateLimiter,
        adapters: Mapping[Platform, PlatformAdapter],
        store: PublishStore | None = None,
        generator: ContentGenerator | None = None,
    ) -> None:
        self._credentials = credentials
        self._rate_limiter = rate_limiter
        self._adapters = dict(adapters)
        self._store = store
        self._generator = generator

    async def publish(self, request: PublishRequest) -> PublishResult:
        try:
            platform = Platform(request.platform)
        except ValueError:
            return _unrecognized(FieldKind.PLATFORM, Platform)
        adapter = self._adapters.get(platform)
        if adapter is None:
            return PublishFailure(
                kind=ErrorKind.BAD_REQUEST,
                retryable=False,
                message=f"No adapter configured for {platform.value}",
            )

        token = await self._credentials.get_token(request.user_id, platform)
        if not token:
            return PublishFailure(
                kind=ErrorKind.NOT_CONNECTED,
                retryable=False,
                message=f"{platform.display_name} account is not connected",
                details={"platform": platform.value},
            )

        log_assessment(assess(request.content), source=f"{platform.value} post")
        content = sanitize_post_content(request.content)
        outcome = validate(content, FieldKind.POST)
        if isinstance(outcome, Invalid):
            return _validation_failure(outcome)

        try:
            adapter.plan(outcome.content)
        except ContentTooLongError as exc:
            return PublishFailure(
                kind=ErrorKind.CONTENT_TOO_LONG,
                retryable=False,
                message=str(exc),
                details={"length": exc.length, "budget": exc.budget},
            )
        except SegmentationError as exc:
            return PublishFailure(
                kind=ErrorKind.CONTENT_TOO_LONG,
                retryable=False,
                message=str(exc),
                details={"segments": exc.needed, "max_segments": exc.max_segments},
            )

        identity = resolve_identity(
            request.user_id, request.headers, self._rate_limiter.policy_for(OperationClass.PUBLISH)
        )
        decision = await self._rate_limiter.check(identity, OperationClass.PUBLISH)
        if not decision.allowed:
            logger.info("Publish rate limit reached for %s", identity)
            return _quota_failure(decision, OperationClass.PUBLISH)

        result = await adapter.publish(outcome.content, token, cancel=request.cancel)
        if isinstance(result, PublishSuccess):
            await self._persist(request.user_id, result)
        return result

    async def _persist(self, user_id: str, result: PublishSuccess) -> None:
        if self._store is None:
            return
        try:
            await self._store.save(user_id, to_record(result))
        except Exception:
            # The post is live; a storage outage must not turn it into a failure.
            logger.exception(
                "Failed to persist %s publish %s", result.platform.value, result.message_id
            )

    async def aclose(self) -> None:
        """Close the adapters' transports and the rate-limit counter."""
        transports = {id(a.transport): a.transport for a in self._adapters.values()}
        for transport in transports.values():
            await transport.aclose()
        await self._rate_limiter.aclose()

    async def draft(
        self,
        user_id: str,
        topic: str,
        platform: Platform,
        tone: Tone = Tone.PROFESSIONAL,
        headers: Mapping[str, str] | None = None,
    ) -> DraftResult:
        """Generate post text for *topic* behind the AI rate limit."""
        if self._generator is None:
            raise RuntimeError("PublishPipeline has no content generator")

        try:
            platform = Platform(platform)
        except ValueError:
            return _unrecognized(FieldKind.PLATFORM, Platform)
        try:
            tone = Tone(tone)
        except ValueError:
            return _unrecognized(FieldKind.TONE, Tone)

        log_assessment(assess(topic), source="topic")
        outcome = validate(sanitize_topic(topic), FieldKind.TOPIC)
        if isinstance(outcome, Invalid):
            return _validation_failure(outcome)

        identity = resolve_identity(
            user_id, headers, self._rate_limiter.policy_for(OperationClass.AI)
        )
        decision = await self._rate_limiter.check(identity, OperationClass.AI)
        if not decision.allowed:
            return _quota_failure(decision, OperationClass.AI)

        generated = await self._generator.generate(outcome.content, platform, tone)
        log_assessment(assess(generated), source="generated draft")
        return Draft(
            topic=outcome.content,
            content=sanitize_post_content(generated),
            platform=platform,
            tone=tone,
        )


def build_adapters(
    settings: Settings, transport: TransportBase
) -> dict[Platform, PlatformAdapter]:
    options = {
        "retry_policy": settings.retry_policy,
        "inter_segment_delay": settings.inter_segment_delay,
    }
    return {
        Platform.TWITTER: TwitterAdapter(transport, **options),
        Platform.LINKEDIN: LinkedInAdapter(transport, **options),
    }


def build_pipeline(
    settings: Settings,
    credentials: CredentialSupplier,
    store: PublishStore | None = None,
    generator: ContentGenerator | None = None,
    counter: CounterService | None = None,
    transport: TransportBase | None = None,
) -> PublishPipeline:
    """Wire a pipeline from *settings*.

    Uses Redis for rate limiting when ``settings.redis_url`` is set, else a
    process-local counter.
    """
    if counter is None:
        if settings.redis_url:
            from postguard.ratelimit.redis_counter import RedisCounterService

            counter = RedisCounterService.from_url(settings.redis_url)
        else:
            counter = InMemoryCounterService()
    if transport is None:
        transport = HTTPTransport(timeout=settings.http_timeout)
    limiter = RateLimiter(
        counter,
        policies=settings.rate_limits,
        fail_closed=settings.fail_closed_classes,
    )
    return PublishPipeline(
        credentials=credentials,
        rate_limiter=limiter,
        adapters=build_adapters(settings, transport),
        store=store,
        generator=generator,
    )
