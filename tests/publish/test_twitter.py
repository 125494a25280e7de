"""Tests for the Twitter adapter: single posts, threads, failures, cancellation."""

from __future__ import annotations

import asyncio
from unittest.mock import call

import pytest

from postguard.errors import TransportError
from postguard.publish.adapter import USER_MESSAGES, ThreadState
from postguard.publish.result import ErrorKind, PublishFailure, PublishSuccess
from postguard.publish.twitter import TwitterAdapter

from tests.publish.conftest import ScriptedTransport, status, tweet_created

TOKEN = "tw-token"
LONG = "a" * 281


def _adapter(transport: ScriptedTransport, sleep, **kwargs) -> TwitterAdapter:
    return TwitterAdapter(transport, sleep=sleep, **kwargs)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class TestPlan:
    def test_fits_in_one(self, sleep):
        segments = _adapter(ScriptedTransport(), sleep).plan("hello")
        assert [s.text for s in segments] == ["hello"]

    def test_exactly_budget(self, sleep):
        assert len(_adapter(ScriptedTransport(), sleep).plan("a" * 280)) == 1

    def test_over_budget_threads(self, sleep):
        segments = _adapter(ScriptedTransport(), sleep).plan(LONG)
        assert [s.text for s in segments] == ["a" * 274 + " 1/2", "a" * 7 + " 2/2"]


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class TestPublish:
    async def test_single_tweet(self, sleep):
        transport = ScriptedTransport(tweet_created("100"))
        result = await _adapter(transport, sleep).publish("hello", TOKEN)

        assert isinstance(result, PublishSuccess)
        assert result.message_ids == ("100",)
        assert not result.incomplete
        (request,) = transport.sent
        assert request.endpoint == "https://api.twitter.com/2/tweets"
        assert request.method == "POST"
        assert request.headers["Authorization"] == f"Bearer {TOKEN}"
        assert request.body == {"text": "hello"}
        sleep.assert_not_awaited()

    async def test_thread_chains_replies(self, sleep):
        transport = ScriptedTransport(tweet_created("1"), tweet_created("2"))
        result = await _adapter(transport, sleep).publish(LONG, TOKEN)

        assert isinstance(result, PublishSuccess)
        assert result.message_ids == ("1", "2")
        first, second = transport.sent
        assert "reply" not in first.body
        assert first.body["text"].endswith(" 1/2")
        assert second.body == {"text": "a" * 7 + " 2/2", "reply": {"in_reply_to_tweet_id": "1"}}
        assert sleep.await_args_list == [call(0.5)]

    async def test_inter_segment_delay_override(self, sleep):
        transport = ScriptedTransport(tweet_created("1"), tweet_created("2"))
        await _adapter(transport, sleep, inter_segment_delay=0).publish(LONG, TOKEN)
        sleep.assert_not_awaited()

    async def test_retries_server_errors(self, sleep):
        transport = ScriptedTransport(status(503), status(503), tweet_created("7"))
        result = await _adapter(transport, sleep).publish("hello", TOKEN)
        assert isinstance(result, PublishSuccess)
        assert len(transport.sent) == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    async def test_rate_limited_with_reset(self, sleep):
        transport = ScriptedTransport(
            status(429, {"detail": "Too Many Requests"}, **{"x-rate-limit-reset": "1700000000"})
        )
        result = await _adapter(transport, sleep).publish("hello", TOKEN)

        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.RATE_LIMIT_EXCEEDED
        assert not result.retryable
        assert result.retry_after == "1700000000"
        assert result.reset_at_ms == 1_700_000_000_000
        assert result.status_code == 429
        assert len(transport.sent) == 1

    async def test_expired_token(self, sleep):
        transport = ScriptedTransport(status(401, {"errors": [{"message": "Unauthorized"}]}))
        result = await _adapter(transport, sleep).publish("hello", TOKEN)

        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.TOKEN_EXPIRED
        assert result.message == USER_MESSAGES[ErrorKind.TOKEN_EXPIRED]
        assert result.details == {"platform": "twitter", "platform_error": "Unauthorized"}

    async def test_network_failure(self, sleep):
        transport = ScriptedTransport(*[TransportError("down")] * 3)
        result = await _adapter(transport, sleep).publish("hello", TOKEN)
        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.NETWORK_ERROR
        assert result.retryable

    async def test_missing_id(self, sleep):
        transport = ScriptedTransport(status(201, {}))
        result = await _adapter(transport, sleep).publish("hello", TOKEN)
        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.UNKNOWN_ERROR

    async def test_partial_thread(self, sleep):
        transport = ScriptedTransport(tweet_created("1"), status(400, {"detail": "duplicate"}))
        result = await _adapter(transport, sleep).publish(LONG, TOKEN)

        assert isinstance(result, PublishSuccess)
        assert result.incomplete
        assert result.message_ids == ("1",)
        assert result.interruption.kind is ErrorKind.BAD_REQUEST
        assert result.interruption.details["platform_error"] == "duplicate"

    async def test_too_many_segments(self, sleep):
        transport = ScriptedTransport()
        result = await _adapter(transport, sleep).publish("a" * 8000, TOKEN)
        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.CONTENT_TOO_LONG
        assert result.details == {"segments": 30, "max_segments": 25}
        assert transport.sent == []


class TestCancellation:
    """Cooperative cancellation between segments and task cancellation."""

    async def test_cancelled_before_start(self, sleep):
        cancel = asyncio.Event()
        cancel.set()
        transport = ScriptedTransport()
        result = await _adapter(transport, sleep).publish(LONG, TOKEN, cancel=cancel)
        assert isinstance(result, PublishFailure)
        assert result.kind is ErrorKind.CANCELLED
        assert transport.sent == []

    async def test_cancelled_mid_thread(self, sleep):
        cancel = asyncio.Event()
        transport = ScriptedTransport(tweet_created("1"), tweet_created("2"))
        transport.on_send = lambda request: cancel.set()
        result = await _adapter(transport, sleep).publish(LONG, TOKEN, cancel=cancel)

        assert isinstance(result, PublishSuccess)
        assert result.incomplete
        assert result.message_ids == ("1",)
        assert result.interruption.kind is ErrorKind.CANCELLED
        assert len(transport.sent) == 1

    async def test_task_cancel_before_anything_sent_propagates(self, sleep):
        transport = ScriptedTransport(asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await _adapter(transport, sleep).publish("hello", TOKEN)

    async def test_task_cancel_after_first_segment(self, sleep):
        transport = ScriptedTransport(tweet_created("1"), asyncio.CancelledError())
        result = await _adapter(transport, sleep).publish(LONG, TOKEN)
        assert isinstance(result, PublishSuccess)
        assert result.incomplete
        assert result.interruption.kind is ErrorKind.CANCELLED


class TestResponseParsing:
    @pytest.fixture()
    def adapter(self, sleep) -> TwitterAdapter:
        return _adapter(ScriptedTransport(), sleep)

    def test_extract_id(self, adapter):
        assert adapter.extract_id(tweet_created("5")) == "5"
        assert adapter.extract_id(status(201, {"data": []})) is None
        assert adapter.extract_id(status(201, None)) is None

    def test_describe_error(self, adapter):
        assert adapter.describe_error(status(403, {"errors": [{"message": "nope"}]})) == "nope"
        assert adapter.describe_error(status(403, {"detail": "Forbidden"})) == "Forbidden"
        assert adapter.describe_error(status(502, "bad gateway")) == "HTTP 502"

    def test_reset_at_ms(self, adapter):
        assert adapter.reset_at_ms("12") == 12_000
        assert adapter.reset_at_ms("soon") is None
        assert adapter.reset_at_ms(None) is None


class TestThreadState:
    def test_progress(self):
        state = ThreadState(pending=["a", "b"])  # type: ignore[list-item]
        assert not state.started
        state.mark_sent("1")
        assert state.started
        assert state.last_sent_id == "1"
        assert not state.done
        state.mark_sent("2")
        assert state.done
        assert state.sent_ids == ["1", "2"]
