"""Shared fixtures for publishing tests: a scripted transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping
from unittest.mock import AsyncMock

import pytest

from postguard.publish.transport.base import TransportBase, TransportResponse


@dataclass
class SentRequest:
    endpoint: str
    method: str
    headers: dict[str, str]
    body: Any


class ScriptedTransport(TransportBase):
    """Returns queued responses in order; queued exceptions are raised."""

    def __init__(self, *responses: TransportResponse | BaseException) -> None:
        self.responses = list(responses)
        self.sent: list[SentRequest] = []
        self.on_send: Callable[[SentRequest], None] | None = None
        self.closed = False

    async def send(
        self,
        endpoint: str,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        request = SentRequest(endpoint, method, dict(headers or {}), body)
        self.sent.append(request)
        if self.on_send is not None:
            self.on_send(request)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


def tweet_created(tweet_id: str) -> TransportResponse:
    return TransportResponse(201, {}, {"data": {"id": tweet_id, "text": "..."}})


def status(code: int, body: Any = None, **headers: str) -> TransportResponse:
    return TransportResponse(code, {k.replace("_", "-"): v for k, v in headers.items()}, body)


@pytest.fixture()
def sleep() -> AsyncMock:
    return AsyncMock()
