"""Shared fixtures for rate-limit tests."""

from __future__ import annotations

import pytest


class FakeClock:
    """Manually advanced clock usable as both monotonic and wall clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(100.0)


@pytest.fixture()
def wall_clock() -> FakeClock:
    return FakeClock(1_700_000_000.0)
