"""Abstract transport interface for platform API calls."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class TransportResponse:
    """A received HTTP response, whatever its status.

    ``headers`` keys are lower-cased.  ``json_body`` is None when the body
    was empty or not JSON.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    json_body: Any = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class TransportBase(abc.ABC):
    """Abstract request primitive used by the platform adapters.

    Implementations return a :class:`TransportResponse` for every response
    received (including 4xx/5xx) and raise
    :class:`postguard.errors.TransportError` only when no response arrived.
    """

    @abc.abstractmethod
    async def send(
        self,
        endpoint: str,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        """Issue one request to *endpoint*."""

    async def aclose(self) -> None:
        """Release any pooled connections."""
