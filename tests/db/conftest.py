"""Shared test fixtures for publish-history database tests.

Provides a file-backed SQLite async engine (one per test) and a session
factory bound to it.
"""

from __future__ import annotations

import pytest

from postguard.db.engine import (
    async_session_factory,
    create_async_engine_from_url,
    create_tables,
)


@pytest.fixture
async def engine(tmp_path):
    """Create a SQLite async engine with all tables."""
    eng = create_async_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'postguard.db'}")
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_session_factory(engine)
