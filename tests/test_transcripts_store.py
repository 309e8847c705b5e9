"""Tests for TranscriptStore — append-only chat history."""

from pathlib import Path

import pytest

from src.transcripts.store import TranscriptStore

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture
async def store(tmp_path: Path) -> TranscriptStore:
    return TranscriptStore(db_path=tmp_path / "test.db")


async def test_append_exchange_stores_both_sides(store: TranscriptStore) -> None:
    await store.append_exchange("user-1", "I can't sleep", "That sounds exhausting.")

    messages = await store.recent("user-1")

    assert [(m.role, m.content) for m in messages] == [
        ("user", "I can't sleep"),
        ("assistant", "That sounds exhausting."),
    ]
    assert not any(m.severe_crisis for m in messages)


async def test_severe_flag_is_persisted(store: TranscriptStore) -> None:
    await store.append_exchange("user-1", "msg", "fixed reply", severe_crisis=True)

    messages = await store.recent("user-1")

    assert all(m.severe_crisis for m in messages)


async def test_recent_is_chronological_and_limited(store: TranscriptStore) -> None:
    for i in range(5):
        await store.append("user-1", "user", f"m{i}")

    messages = await store.recent("user-1", limit=3)

    assert [m.content for m in messages] == ["m2", "m3", "m4"]


async def test_recent_isolated_per_user(store: TranscriptStore) -> None:
    await store.append("user-1", "user", "mine")
    await store.append("user-2", "user", "theirs")

    assert [m.content for m in await store.recent("user-1")] == ["mine"]


async def test_append_keeps_explicit_timestamp(store: TranscriptStore) -> None:
    await store.append("user-1", "user", "hello", timestamp="2024-03-01T10:00:00+00:00")

    (message,) = await store.recent("user-1")

    assert message.created_at == "2024-03-01T10:00:00+00:00"
