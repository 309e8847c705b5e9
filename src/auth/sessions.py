"""SessionStore — bearer-token identity lookup via libsql.

Sign-up and login are handled by the account service; this module only
resolves a token to a user and mints tokens for operator tooling.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from src.db import connect

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS sessions (
    token       TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    email       TEXT NOT NULL DEFAULT '',
    expires_at  TEXT NOT NULL
)
"""


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: str


class SessionStore:
    """Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``)."""

    def __init__(self, db_path: Path | None = None, ttl_hours: int = 24 * 7) -> None:
        self._db_path = db_path
        self._ttl = timedelta(hours=ttl_hours)

    async def create_session(self, user_id: str, email: str = "") -> str:
        """Issue a new random token for *user_id*."""
        token = secrets.token_urlsafe(32)
        expires_at = (datetime.now(UTC) + self._ttl).isoformat()
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            await db.execute(
                "INSERT INTO sessions (token, user_id, email, expires_at) VALUES (?, ?, ?, ?)",
                (token, user_id, email, expires_at),
            )
            await db.commit()
        logger.info("Session created for %s", user_id[:8])
        return token

    async def get_current_user(self, token: str) -> AuthenticatedUser | None:
        """Resolve *token*; unknown or expired tokens give None."""
        if not token:
            return None
        async with connect(_CREATE_TABLE, local_path_override=self._db_path) as db:
            cursor = await db.execute(
                "SELECT user_id, email, expires_at FROM sessions WHERE token = ?",
                (token,),
            )
            row = await cursor.fetchone()
        if not row:
            return None

        user_id, email, expires_at = row
        try:
            expired = datetime.fromisoformat(expires_at) <= datetime.now(UTC)
        except ValueError:
            logger.warning("Session for %s has malformed expiry %r", user_id[:8], expires_at)
            return None
        if expired:
            logger.debug("Expired session for %s", user_id[:8])
            return None
        return AuthenticatedUser(id=user_id, email=email)
