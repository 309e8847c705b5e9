"""Tests for bearer-token session lookup."""

from pathlib import Path

import pytest

from src.auth.sessions import AuthenticatedUser, SessionStore
from src.db import connect

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture
async def store(tmp_path: Path) -> SessionStore:
    return SessionStore(db_path=tmp_path / "test.db")


async def test_create_and_resolve(store: SessionStore) -> None:
    token = await store.create_session("user-1", "asha@uni.edu")

    assert len(token) >= 32
    assert await store.get_current_user(token) == AuthenticatedUser("user-1", "asha@uni.edu")


async def test_tokens_are_unique(store: SessionStore) -> None:
    first = await store.create_session("user-1")
    second = await store.create_session("user-1")
    assert first != second


async def test_unknown_and_empty_tokens(store: SessionStore) -> None:
    assert await store.get_current_user("") is None
    assert await store.get_current_user("not-a-token") is None


async def test_expired_session(tmp_path: Path) -> None:
    store = SessionStore(db_path=tmp_path / "test.db", ttl_hours=-1)
    token = await store.create_session("user-1")

    assert await store.get_current_user(token) is None


async def test_malformed_expiry(store: SessionStore, tmp_path: Path) -> None:
    token = await store.create_session("user-1")
    async with connect(local_path_override=tmp_path / "test.db") as db:
        await db.execute("UPDATE sessions SET expires_at = 'soon' WHERE token = ?", (token,))
        await db.commit()

    assert await store.get_current_user(token) is None
