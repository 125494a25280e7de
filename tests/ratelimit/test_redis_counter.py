"""Tests for the Redis counter service against a mocked client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from postguard.ratelimit.config import OperationClass, RateLimitPolicy
from postguard.ratelimit.redis_counter import RedisCounterService

POLICY = RateLimitPolicy(OperationClass.PUBLISH, 5, "1 m")
KEY = "ratelimit:publish:u1"


def _client(execute_result: list) -> tuple[MagicMock, MagicMock]:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=execute_result)
    client = MagicMock()
    client.pipeline.return_value.__aenter__.return_value = pipe
    client.pipeline.return_value.__aexit__.return_value = False
    client.zrem = AsyncMock()
    client.aclose = AsyncMock()
    return client, pipe


class TestRedisCounterService:
    async def test_allowed(self):
        client, pipe = _client([0, 1, 3, [(b"m", 1_000.0)], True])
        service = RedisCounterService(client, wall_clock=lambda: 2.0)

        decision = await service.check("u1", POLICY)

        assert decision.allowed
        assert decision.remaining == 2
        assert decision.reset_at_ms == 61_000
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.zremrangebyscore.assert_called_once_with(KEY, 0, 2_000 - 60_000)
        pipe.pexpire.assert_called_once_with(KEY, 60_000)
        client.zrem.assert_not_awaited()

    async def test_rejected_entry_removed(self):
        client, pipe = _client([0, 1, 6, [(b"m", 1_000.0)], True])
        service = RedisCounterService(client, wall_clock=lambda: 2.0)

        decision = await service.check("u1", POLICY)

        assert not decision.allowed
        assert decision.remaining == 0
        member = next(iter(pipe.zadd.call_args.args[1]))
        client.zrem.assert_awaited_once_with(KEY, member)

    async def test_limit_is_inclusive(self):
        client, _ = _client([0, 1, 5, [(b"m", 1_000.0)], True])
        decision = await RedisCounterService(client, wall_clock=lambda: 2.0).check("u1", POLICY)
        assert decision.allowed
        assert decision.remaining == 0

    async def test_empty_oldest_uses_now(self):
        client, _ = _client([0, 1, 1, [], True])
        decision = await RedisCounterService(client, wall_clock=lambda: 2.0).check("u1", POLICY)
        assert decision.reset_at_ms == 62_000

    async def test_errors_propagate(self):
        client, pipe = _client([])
        pipe.execute.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            await RedisCounterService(client).check("u1", POLICY)

    async def test_close(self):
        client, _ = _client([])
        await RedisCounterService(client).close()
        client.aclose.assert_awaited_once()

    def test_from_url(self):
        with patch("postguard.ratelimit.redis_counter.aioredis.from_url") as from_url:
            service = RedisCounterService.from_url("redis://localhost:6379/0")
        from_url.assert_called_once_with("redis://localhost:6379/0")
        assert isinstance(service, RedisCounterService)
