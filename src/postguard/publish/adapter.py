"""Platform publishing adapter: plan, then send segments in order.

Every adapter follows the same life cycle::

    segments = adapter.plan(content)          # no network, may raise
    result = await adapter.publish(content, token, cancel=event)

``publish`` walks an explicit :class:`ThreadState`.  Segment *k + 1* is sent
only after segment *k* is acknowledged and always references the id of the
segment before it.  Failures inside the walk are exceptions; the walk's
boundary turns them into a :class:`~postguard.publish.result.PublishResult`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from postguard.content.segment import DEFAULT_NUMBERING_RESERVE, Segment, split_content
from postguard.content.types import Platform
from postguard.errors import (
    ContentTooLongError,
    PlatformHTTPError,
    SegmentationError,
    TransportError,
)
from postguard.publish.result import (
    ErrorKind,
    PublishFailure,
    PublishResult,
    PublishSuccess,
)
from postguard.publish.retry import DEFAULT_RETRY_POLICY, RetryPolicy, send_with_retry
from postguard.publish.transport.base import TransportBase, TransportResponse

logger = logging.getLogger(__name__)

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.TOKEN_EXPIRED: "Access token expired or invalid. Please re-authenticate.",
    ErrorKind.FORBIDDEN: "Forbidden. Check the account's API permissions.",
    ErrorKind.RATE_LIMIT_EXCEEDED: "Platform rate limit exceeded. Please try again later.",
    ErrorKind.CONTENT_TOO_LONG: "Content is too long for this platform.",
    ErrorKind.SERVER_ERROR: "Platform server error. Please try again later.",
    ErrorKind.NETWORK_ERROR: "Network error while contacting the platform.",
    ErrorKind.BAD_REQUEST: "The platform rejected the request.",
    ErrorKind.CANCELLED: "Publishing was cancelled.",
    ErrorKind.UNKNOWN_ERROR: "An unknown error occurred while publishing.",
}


@dataclass
class ThreadState:
    """Progress through a planned thread.

    ``pending`` holds the segments not yet acknowledged, in order.
    """

    pending: list[Segment]
    sent_ids: list[str] = field(default_factory=list)
    last_sent_id: str | None = None

    @property
    def done(self) -> bool:
        return not self.pending

    @property
    def started(self) -> bool:
        return bool(self.sent_ids)

    def mark_sent(self, message_id: str) -> None:
        self.pending.pop(0)
        self.sent_ids.append(message_id)
        self.last_sent_id = message_id


class PlatformAdapter(abc.ABC):
    """Base class for one external publishing platform."""

    platform: Platform
    base_url: str
    character_budget: int
    supports_threading: bool = False
    max_segments: int = 1
    numbering_reserve: int = DEFAULT_NUMBERING_RESERVE
    inter_segment_delay: float = 0.0
    reset_headers: tuple[str, ...] = ("retry-after",)

    def __init__(
        self,
        transport: TransportBase,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        inter_segment_delay: float | None = None,
    ) -> None:
        self._transport = transport
        self._retry_policy = retry_policy
        self._sleep = sleep
        if inter_segment_delay is not None:
            self.inter_segment_delay = inter_segment_delay

    # -- subclass hooks ----------------------------------------------------

    @abc.abstractmethod
    def build_payload(
        self, text: str, reply_to: str | None, context: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Request body for one segment.

        *context* is what :meth:`prepare` returned for this publish.
        """

    @abc.abstractmethod
    def extract_id(self, response: TransportResponse) -> str | None:
        """Message id from a successful create response."""

    @abc.abstractmethod
    def describe_error(self, response: TransportResponse) -> str:
        """Platform error text from a failed response."""

    @property
    @abc.abstractmethod
    def publish_path(self) -> str:
        """Path of the create-message endpoint."""

    @property
    def transport(self) -> TransportBase:
        return self._transport

    def build_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def reset_at_ms(self, retry_after: str | None) -> int | None:
        """Convert a stated reset header into epoch ms, if the format is known."""
        return None

    async def prepare(self, token: str) -> dict[str, Any]:
        """Fetch anything the create call needs.  Runs once per publish."""
        return {}

    # -- planning ----------------------------------------------------------

    def plan(self, content: str) -> list[Segment]:
        """Decide how *content* will be sent, without touching the network.

        Raises:
            ContentTooLongError: Over budget on a platform without threads.
            SegmentationError: More segments needed than the platform allows.
        """
        if len(content) <= self.character_budget:
            return [Segment(1, 1, content)]
        if not self.supports_threading:
            raise ContentTooLongError(len(content), self.character_budget)
        return split_content(
            content,
            self.character_budget,
            numbering_reserve=self.numbering_reserve,
            max_segments=self.max_segments,
        )

    # -- delivery ----------------------------------------------------------

    async def _send_segment(
        self,
        segment: Segment,
        reply_to: str | None,
        token: str,
        context: Mapping[str, Any],
    ) -> str:
        url = f"{self.base_url}{self.publish_path}"
        headers = self.build_headers(token)
        body = self.build_payload(segment.text, reply_to, context)

        response = await send_with_retry(
            lambda: self._transport.send(url, "POST", headers, body),
            describe_error=self.describe_error,
            reset_headers=self.reset_headers,
            policy=self._retry_policy,
            sleep=self._sleep,
            label=f"{self.platform.value} segment {segment.ordinal}/{segment.total}",
        )
        message_id = self.extract_id(response)
        if not message_id:
            raise PlatformHTTPError(
                response.status,
                ErrorKind.UNKNOWN_ERROR.value,
                "Response did not include a message id",
            )
        return message_id

    def _failure_from_http(self, exc: PlatformHTTPError) -> PublishFailure:
        kind = ErrorKind(exc.kind)
        return PublishFailure(
            kind=kind,
            retryable=exc.retryable,
            message=USER_MESSAGES.get(kind, exc.message),
            status_code=exc.status,
            retry_after=exc.retry_after,
            reset_at_ms=self.reset_at_ms(exc.retry_after),
            details={"platform": self.platform.value, "platform_error": exc.message},
        )

    def _interrupted(
        self, state: ThreadState, content: str, failure: PublishFailure
    ) -> PublishResult:
        if not state.started:
            return failure
        logger.warning(
            "%s thread stopped after %d of %d segments: %s",
            self.platform.display_name,
            len(state.sent_ids),
            len(state.sent_ids) + len(state.pending),
            failure.kind.value,
        )
        return PublishSuccess(
            message_ids=tuple(state.sent_ids),
            platform=self.platform,
            content=content,
            incomplete=True,
            interruption=failure,
        )

    async def publish(
        self,
        content: str,
        token: str,
        cancel: asyncio.Event | None = None,
    ) -> PublishResult:
        """Publish *content*, threading it if the platform allows.

        A failure or cancellation after at least one segment went live yields
        an incomplete :class:`PublishSuccess` carrying the ids sent so far.
        Task cancellation before anything was sent propagates.
        """
        try:
            segments = self.plan(content)
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

        state = ThreadState(pending=list(segments))
        try:
            context = await self.prepare(token)
            while not state.done:
                if cancel is not None and cancel.is_set():
                    return self._interrupted(
                        state,
                        content,
                        PublishFailure(
                            kind=ErrorKind.CANCELLED,
                            retryable=True,
                            message=USER_MESSAGES[ErrorKind.CANCELLED],
                        ),
                    )
                segment = state.pending[0]
                message_id = await self._send_segment(
                    segment, state.last_sent_id, token, context
                )
                state.mark_sent(message_id)
                if not state.done and self.inter_segment_delay > 0:
                    await self._sleep(self.inter_segment_delay)
        except asyncio.CancelledError:
            if not state.started:
                raise
            return self._interrupted(
                state,
                content,
                PublishFailure(
                    kind=ErrorKind.CANCELLED,
                    retryable=True,
                    message=USER_MESSAGES[ErrorKind.CANCELLED],
                ),
            )
        except PlatformHTTPError as exc:
            return self._interrupted(state, content, self._failure_from_http(exc))
        except TransportError as exc:
            return self._interrupted(
                state,
                content,
                PublishFailure(
                    kind=ErrorKind.NETWORK_ERROR,
                    retryable=True,
                    message=USER_MESSAGES[ErrorKind.NETWORK_ERROR],
                    details={"platform": self.platform.value, "error": str(exc)},
                ),
            )

        logger.info(
            "Published %d segment(s) to %s", len(state.sent_ids), self.platform.display_name
        )
        return PublishSuccess(
            message_ids=tuple(state.sent_ids),
            platform=self.platform,
            content=content,
        )
