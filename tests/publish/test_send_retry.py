"""Tests for status classification and the retry loop."""

from __future__ import annotations

from unittest.mock import AsyncMock, call

import pytest

from postguard.errors import PlatformHTTPError, TransportError
from postguard.publish.result import ErrorKind
from postguard.publish.retry import (
    RetryPolicy,
    classify_status,
    find_reset,
    is_retryable_status,
    send_with_retry,
)
from postguard.publish.transport.base import TransportResponse

from tests.publish.conftest import status


def _describe(response: TransportResponse) -> str:
    return f"HTTP {response.status}"


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "code, kind",
        [
            (401, ErrorKind.TOKEN_EXPIRED),
            (403, ErrorKind.FORBIDDEN),
            (413, ErrorKind.CONTENT_TOO_LONG),
            (422, ErrorKind.CONTENT_TOO_LONG),
            (429, ErrorKind.RATE_LIMIT_EXCEEDED),
            (408, ErrorKind.NETWORK_ERROR),
            (500, ErrorKind.SERVER_ERROR),
            (503, ErrorKind.SERVER_ERROR),
            (400, ErrorKind.BAD_REQUEST),
            (404, ErrorKind.BAD_REQUEST),
            (302, ErrorKind.UNKNOWN_ERROR),
        ],
    )
    def test_kinds(self, code: int, kind: ErrorKind):
        assert classify_status(code) is kind

    def test_retryable(self):
        assert is_retryable_status(429)
        assert not is_retryable_status(429, "1700000000")
        assert is_retryable_status(408)
        assert is_retryable_status(502)
        assert not is_retryable_status(400)
        assert not is_retryable_status(401)

    def test_find_reset(self):
        response = status(429, **{"x-rate-limit-reset": "99"})
        assert find_reset(response, ("retry-after", "x-rate-limit-reset")) == "99"
        assert find_reset(response, ("retry-after",)) is None


class TestRetryPolicy:
    def test_default_schedule(self):
        policy = RetryPolicy()
        assert [policy.delay_for(n) for n in (1, 2, 3, 7)] == [1.0, 2.0, 4.0, 4.0]

    def test_jitter(self):
        policy = RetryPolicy(jitter=0.5)
        assert policy.delay_for(1, rng=lambda: 1.0) == 1.5

    def test_no_delays(self):
        assert RetryPolicy(delays=()).delay_for(1) == 0.0

    def test_requires_an_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestSendWithRetry:
    async def test_server_errors_then_success(self, sleep):
        send = AsyncMock(side_effect=[status(503), status(503), status(200, {"ok": 1})])
        response = await send_with_retry(send, describe_error=_describe, sleep=sleep)
        assert response.status == 200
        assert send.await_count == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    async def test_client_error_not_retried(self, sleep):
        send = AsyncMock(side_effect=[status(400)])
        with pytest.raises(PlatformHTTPError) as excinfo:
            await send_with_retry(send, describe_error=_describe, sleep=sleep)
        assert excinfo.value.kind == ErrorKind.BAD_REQUEST.value
        assert excinfo.value.message == "HTTP 400"
        assert not excinfo.value.retryable
        assert send.await_count == 1
        sleep.assert_not_awaited()

    async def test_rate_limit_with_reset_not_retried(self, sleep):
        send = AsyncMock(side_effect=[status(429, **{"x-rate-limit-reset": "1700000000"})])
        with pytest.raises(PlatformHTTPError) as excinfo:
            await send_with_retry(
                send,
                describe_error=_describe,
                reset_headers=("x-rate-limit-reset",),
                sleep=sleep,
            )
        assert excinfo.value.retry_after == "1700000000"
        assert not excinfo.value.retryable
        assert send.await_count == 1

    async def test_rate_limit_without_reset_retried(self, sleep):
        send = AsyncMock(side_effect=[status(429)] * 3)
        with pytest.raises(PlatformHTTPError) as excinfo:
            await send_with_retry(send, describe_error=_describe, sleep=sleep)
        assert excinfo.value.kind == ErrorKind.RATE_LIMIT_EXCEEDED.value
        assert excinfo.value.retryable
        assert send.await_count == 3

    async def test_transport_error_recovers(self, sleep):
        send = AsyncMock(side_effect=[TransportError("reset"), status(201)])
        response = await send_with_retry(send, describe_error=_describe, sleep=sleep)
        assert response.status == 201
        assert sleep.await_args_list == [call(1.0)]

    async def test_transport_error_exhausted(self, sleep):
        send = AsyncMock(side_effect=[TransportError("down")] * 3)
        with pytest.raises(TransportError):
            await send_with_retry(send, describe_error=_describe, sleep=sleep)
        assert send.await_count == 3
        assert sleep.await_count == 2

    async def test_custom_attempts(self, sleep):
        send = AsyncMock(side_effect=[status(500)])
        with pytest.raises(PlatformHTTPError):
            await send_with_retry(
                send, describe_error=_describe, policy=RetryPolicy(max_attempts=1), sleep=sleep
            )
        sleep.assert_not_awaited()
