"""SQL implementation of the publish-history store."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from postguard.db.models import PublishedPost
from postguard.db.retry import db_retry
from postguard.publish.result import PublishedRecord


class SqlPublishStore:
    """Writes one :class:`PublishedPost` row per successful publish.

    Each call opens its own session so a retried write starts clean.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @db_retry()
    async def save(self, user_id: str, record: PublishedRecord) -> None:
        row = PublishedPost(
            user_id=user_id,
            platform=record.platform.value,
            primary_message_id=record.platform_message_ids[0],
            platform_message_ids=list(record.platform_message_ids),
            content=record.content,
            thread_complete=record.thread_complete,
            created_at=record.created_at,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()

    async def list_for_user(
        self, user_id: str, platform: str | None = None, limit: int = 50
    ) -> list[PublishedPost]:
        """Newest first."""
        stmt = select(PublishedPost).where(PublishedPost.user_id == user_id)
        if platform is not None:
            stmt = stmt.where(PublishedPost.platform == platform)
        stmt = stmt.order_by(PublishedPost.created_at.desc()).limit(limit)  # type: ignore[union-attr]
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(PublishedPost)
            .where(PublishedPost.user_id == user_id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()
