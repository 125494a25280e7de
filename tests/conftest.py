"""Shared test fixtures for pipeline-level tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from postguard.content.types import Platform


class StaticCredentials:
    """Credential supplier backed by a platform -> token dict."""

    def __init__(self, tokens: dict[Platform, str] | None = None) -> None:
        self.tokens = dict(tokens or {})

    async def get_token(self, user_id: str, platform: Platform) -> str | None:
        return self.tokens.get(platform)


@pytest.fixture()
def credentials() -> StaticCredentials:
    return StaticCredentials({Platform.TWITTER: "tw-token", Platform.LINKEDIN: "li-token"})


@pytest.fixture()
def store() -> MagicMock:
    """A publish store whose save() is an AsyncMock."""
    mock = MagicMock()
    mock.save = AsyncMock()
    return mock
