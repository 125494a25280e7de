"""Async engine and session factories.

Creates SQLAlchemy ``AsyncEngine`` instances from a database URL that may
point to either **SQLite** (via ``aiosqlite``) or **PostgreSQL** (via
``asyncpg``, installed separately).  Backend-specific connection defaults
are applied automatically.

Usage::

    from postguard.db.engine import create_async_engine_from_url, create_tables

    engine = create_async_engine_from_url(settings.database_url)
    await create_tables(engine)
    store = SqlPublishStore(async_session_factory(engine))
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine as _create_async_engine,
)
from sqlmodel import SQLModel

import postguard.db.models  # noqa: F401 -- registers tables with SQLModel.metadata
from postguard.errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_async_engine_from_url(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an ``AsyncEngine`` from a database URL.

    - **SQLite** (``sqlite://``): aiosqlite with ``check_same_thread=False``.
    - **PostgreSQL** (``postgresql://`` or ``postgres://``): asyncpg.

    Extra *kwargs* are forwarded to ``create_async_engine`` and override the
    defaults set here.

    Raises
    ------
    ConfigurationError
        If the URL scheme is not supported.
    """
    merged: dict[str, Any] = {"echo": False}

    if url.startswith("sqlite"):
        if "+aiosqlite" not in url:
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        merged["connect_args"] = {"check_same_thread": False, "timeout": 30}
        merged["pool_pre_ping"] = True
        backend = "sqlite (aiosqlite)"

    elif url.startswith("postgresql") or url.startswith("postgres://"):
        # Heroku / Railway use postgres:// which asyncpg doesn't accept
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif "+" not in url.split("://")[0]:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        merged.update(pool_size=5, max_overflow=10, pool_recycle=1800)
        backend = "postgresql (asyncpg)"

    else:
        raise ConfigurationError(f"Unsupported DATABASE_URL scheme: {url.split('://')[0]}")

    merged.update(kwargs)

    logger.info("Creating async engine for %s backend", backend)
    return _create_async_engine(url, **merged)


def async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with ``expire_on_commit=False`` (safe after commit)."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all postguard tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("All SQLModel tables created")
