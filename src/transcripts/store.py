"""TranscriptStore — append-only chat transcripts via libsql."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.db import connect

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS chat_messages (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id        TEXT NOT NULL,
    role           TEXT NOT NULL,
    content        TEXT NOT NULL,
    created_at     TEXT NOT NULL,
    severe_crisis  INTEGER NOT NULL DEFAULT 0
)
"""

_INSERT = """
INSERT INTO chat_messages (user_id, role, content, created_at, severe_crisis)
VALUES (?, ?, ?, ?, ?)
"""


@dataclass
class StoredMessage:
    id: int
    user_id: str
    role: str
    content: str
    created_at: str
    severe_crisis: bool


class TranscriptStore:
    """Rows are only ever inserted; nothing here updates or deletes.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    async def append(
        self,
        user_id: str,
        role: str,
        content: str,
        timestamp: str | None = None,
        severe_crisis: bool = False,
    ) -> None:
        timestamp = timestamp or datetime.now(UTC).isoformat()
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            await db.execute(_INSERT, (user_id, role, content, timestamp, int(severe_crisis)))
            await db.commit()

    async def append_exchange(
        self,
        user_id: str,
        user_message: str,
        reply: str,
        severe_crisis: bool = False,
    ) -> None:
        """Store a user message and its reply in one commit."""
        now = datetime.now(UTC).isoformat()
        flag = int(severe_crisis)
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            await db.execute(_INSERT, (user_id, "user", user_message, now, flag))
            await db.execute(_INSERT, (user_id, "assistant", reply, now, flag))
            await db.commit()
        logger.debug("Transcript +2 for %s (severe=%s)", user_id[:8], severe_crisis)

    async def recent(self, user_id: str, limit: int = 50) -> list[StoredMessage]:
        """Most recent *limit* messages in chronological order."""
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            cursor = await db.execute(
                """
                SELECT id, user_id, role, content, created_at, severe_crisis
                FROM chat_messages WHERE user_id = ?
                ORDER BY id DESC LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [
            StoredMessage(r[0], r[1], r[2], r[3], r[4], bool(r[5])) for r in reversed(rows)
        ]
