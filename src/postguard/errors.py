"""postguard exception hierarchy.

All package-specific exceptions inherit from :class:`PostguardError`.
Stages raise these internally; the pipeline turns them into result values
at its boundaries.
"""

from __future__ import annotations

from typing import Any, Mapping

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset(
    {
        "token",
        "access_token",
        "refresh_token",
        "code_verifier",
        "code_challenge",
        "password",
        "secret",
        "api_key",
        "apikey",
        "client_secret",
        "authorization",
    }
)


class PostguardError(Exception):
    """Base exception for all postguard errors."""


class ConfigurationError(PostguardError):
    """Raised when a setting or policy string cannot be parsed."""


class ContentError(PostguardError):
    """Raised when content cannot be shaped for the target platform."""


class ContentTooLongError(ContentError):
    """Raised when content exceeds a budget the platform cannot thread around."""

    def __init__(self, length: int, budget: int) -> None:
        super().__init__(
            f"Content is {length} characters; the platform allows {budget} "
            "and does not support threads"
        )
        self.length = length
        self.budget = budget


class SegmentationError(ContentError):
    """Raised when content would need more segments than the platform allows."""

    def __init__(self, needed: int, max_segments: int) -> None:
        super().__init__(
            f"Thread would need {needed} segments (maximum {max_segments})"
        )
        self.needed = needed
        self.max_segments = max_segments


class TransportError(PostguardError):
    """Raised on network-level failures (no HTTP status was received)."""


class PlatformHTTPError(PostguardError):
    """Raised for a non-2xx platform response after classification."""

    def __init__(
        self,
        status: int,
        kind: str,
        message: str,
        retry_after: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.kind = kind
        self.message = message
        self.retry_after = retry_after
        self.retryable = retryable


def redact_details(details: Any) -> Any:
    """Return a copy of *details* with sensitive values replaced.

    Walks dicts and lists recursively.  Keys are compared case-insensitively
    against :data:`SENSITIVE_FIELDS`.  Non-container values pass through.
    """
    if isinstance(details, Mapping):
        return {
            key: (
                REDACTED
                if str(key).lower() in SENSITIVE_FIELDS
                else redact_details(value)
            )
            for key, value in details.items()
        }
    if isinstance(details, (list, tuple)):
        return [redact_details(item) for item in details]
    return details
