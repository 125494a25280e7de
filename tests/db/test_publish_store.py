"""Tests for SqlPublishStore."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from postguard.content.types import Platform
from postguard.db.store import SqlPublishStore
from postguard.publish.result import PublishedRecord

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(
    ids: tuple[str, ...] = ("1",),
    platform: Platform = Platform.TWITTER,
    minutes: int = 0,
    complete: bool = True,
) -> PublishedRecord:
    return PublishedRecord(
        platform_message_ids=ids,
        platform=platform,
        content="hello world",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        thread_complete=complete,
    )


@pytest.fixture
def store(session_factory) -> SqlPublishStore:
    return SqlPublishStore(session_factory)


async def test_save_thread(store):
    await store.save("user-1", _record(ids=("10", "11", "12"), complete=False))

    (row,) = await store.list_for_user("user-1")
    assert row.platform == "twitter"
    assert row.primary_message_id == "10"
    assert row.platform_message_ids == ["10", "11", "12"]
    assert row.content == "hello world"
    assert row.thread_complete is False


async def test_list_newest_first(store):
    await store.save("user-1", _record(ids=("a",), minutes=0))
    await store.save("user-1", _record(ids=("b",), minutes=5))
    await store.save("user-1", _record(ids=("c",), minutes=2))

    rows = await store.list_for_user("user-1")
    assert [r.primary_message_id for r in rows] == ["b", "c", "a"]

    limited = await store.list_for_user("user-1", limit=1)
    assert [r.primary_message_id for r in limited] == ["b"]


async def test_filter_by_platform_and_user(store):
    await store.save("user-1", _record(ids=("t",)))
    await store.save("user-1", _record(ids=("urn:li:share:1",), platform=Platform.LINKEDIN))
    await store.save("user-2", _record(ids=("other",)))

    linkedin = await store.list_for_user("user-1", platform="linkedin")
    assert [r.primary_message_id for r in linkedin] == ["urn:li:share:1"]
    assert await store.count_for_user("user-1") == 2
    assert await store.count_for_user("user-2") == 1
    assert await store.count_for_user("nobody") == 0
