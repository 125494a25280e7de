"""Publish outcomes: a success/failure tagged union plus the persisted shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from postguard.content.types import Platform
from postguard.errors import redact_details


class ErrorKind(str, Enum):
    """Why a publish did not (fully) happen."""

    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONTENT_TOO_LONG = "CONTENT_TOO_LONG"
    FORBIDDEN = "FORBIDDEN"
    SERVER_ERROR = "SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_CONNECTED = "NOT_CONNECTED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    CANCELLED = "CANCELLED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PublishFailure:
    """Nothing was published, or (as an ``interruption``) the rest was not.

    ``details`` is redacted on construction so tokens and secrets never
    survive into results or logs.
    """

    kind: ErrorKind
    retryable: bool
    message: str
    status_code: int | None = None
    retry_after: str | None = None
    reset_at_ms: int | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", redact_details(dict(self.details)))

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": False,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "message": self.message,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
            "reset_at_ms": self.reset_at_ms,
            "details": self.details,
        }


@dataclass(frozen=True)
class PublishSuccess:
    """At least one message went live.

    ``incomplete`` is True when a thread stopped after some segments were
    published; ``interruption`` then holds the failure that stopped it.
    """

    message_ids: tuple[str, ...]
    platform: Platform
    content: str
    created_at: datetime = field(default_factory=utc_now)
    incomplete: bool = False
    interruption: PublishFailure | None = None

    @property
    def ok(self) -> bool:
        return True

    @property
    def message_id(self) -> str:
        return self.message_ids[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "message_ids": list(self.message_ids),
            "platform": self.platform.value,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "incomplete": self.incomplete,
            "interruption": (
                self.interruption.to_dict() if self.interruption is not None else None
            ),
        }


PublishResult = Union[PublishSuccess, PublishFailure]


@dataclass(frozen=True)
class PublishedRecord:
    """What the persistence collaborator stores for a successful publish."""

    platform_message_ids: tuple[str, ...]
    platform: Platform
    content: str
    created_at: datetime
    thread_complete: bool = True


def to_record(success: PublishSuccess) -> PublishedRecord:
    return PublishedRecord(
        platform_message_ids=success.message_ids,
        platform=success.platform,
        content=success.content,
        created_at=success.created_at,
        thread_complete=not success.incomplete,
    )
