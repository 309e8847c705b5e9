"""ProfileStore — user profiles and emergency contacts via libsql."""

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
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id                  TEXT PRIMARY KEY,
    username                 TEXT NOT NULL DEFAULT '',
    email                    TEXT NOT NULL DEFAULT '',
    emergency_contact_email  TEXT,
    updated_at               TEXT NOT NULL
)
"""


@dataclass
class UserProfile:
    user_id: str
    username: str
    email: str
    emergency_contact_email: str | None = None

    @property
    def display_name(self) -> str:
        """Name used in prompts; falls back to the email's local part."""
        if self.username:
            return self.username
        if self.email:
            return self.email.split("@")[0]
        return "Student"


class ProfileStore:
    """Read profiles; write only the fields account management owns.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    async def upsert(
        self,
        user_id: str,
        username: str,
        email: str,
        emergency_contact_email: str | None = None,
    ) -> UserProfile:
        now = datetime.now(UTC).isoformat()
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO user_profiles
                    (user_id, username, email, emergency_contact_email, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, username, email, emergency_contact_email, now),
            )
            await db.commit()
        return UserProfile(user_id, username, email, emergency_contact_email)

    async def get_profile(self, user_id: str) -> UserProfile | None:
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            cursor = await db.execute(
                """
                SELECT user_id, username, email, emergency_contact_email
                FROM user_profiles WHERE user_id = ?
                """,
                (user_id,),
            )
            row = await cursor.fetchone()
        if not row:
            return None
        return UserProfile(
            user_id=row[0],
            username=row[1] or "",
            email=row[2] or "",
            emergency_contact_email=row[3] or None,
        )

    async def set_emergency_contact(self, user_id: str, contact_email: str | None) -> bool:
        """Set or clear the emergency contact. Returns False if no profile exists."""
        now = datetime.now(UTC).isoformat()
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            cursor = await db.execute(
                """
                UPDATE user_profiles
                SET emergency_contact_email = ?, updated_at = ?
                WHERE user_id = ?
                """,
                (contact_email or None, now, user_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            action = "set" if contact_email else "cleared"
            logger.info("Emergency contact %s for %s", action, user_id[:8])
        return updated
