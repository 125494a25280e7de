"""SQLModel table definitions for publish history.

Usage::

    from postguard.db.models import PublishedPost
    from sqlmodel import SQLModel, create_engine

    engine = create_engine("sqlite:///postguard.db")
    SQLModel.metadata.create_all(engine)
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, func
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PublishedPost(SQLModel, table=True):
    """One successful publish: a single post or a (possibly partial) thread.

    ``platform_message_ids`` keeps thread order; ``primary_message_id`` is its
    first element, stored separately for lookups.
    """

    __tablename__ = "published_posts"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(index=True)
    primary_message_id: str = Field(index=True)
    platform_message_ids: list = Field(default_factory=list, sa_type=JSON)
    content: str
    thread_complete: bool = True
    created_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={"server_default": func.now()})
