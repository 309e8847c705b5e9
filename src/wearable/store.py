"""WearableStore — stored daily wearable data and vendor tokens via libsql.

The OAuth lifecycle that fills ``wearable_connections`` and the sync job
that fills ``wearable_data`` live outside this service; the chat pipeline
only reads.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.db import connect
from src.wearable.models import WearableRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_CONNECTIONS = """
CREATE TABLE IF NOT EXISTS wearable_connections (
    user_id         TEXT PRIMARY KEY,
    vendor_user_id  TEXT NOT NULL DEFAULT '',
    access_token    TEXT NOT NULL,
    refresh_token   TEXT NOT NULL DEFAULT '',
    expires_at      TEXT NOT NULL DEFAULT '',
    connected_at    TEXT NOT NULL
)
"""

_CREATE_DATA = """
CREATE TABLE IF NOT EXISTS wearable_data (
    user_id    TEXT NOT NULL,
    data_type  TEXT NOT NULL,
    date       TEXT NOT NULL,
    data       TEXT NOT NULL,
    PRIMARY KEY (user_id, data_type, date)
)
"""

# Sleep, activity and heart rate are stored once per day.
RECORDS_PER_DAY = 3


class WearableStore:
    """Reads a user's stored wearable history and access token.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    def _connect(self):  # noqa: ANN202
        return connect(_CREATE_CONNECTIONS, _CREATE_DATA, local_path_override=self._db_path)

    # -- Connections -----------------------------------------------------------

    async def save_connection(
        self,
        user_id: str,
        access_token: str,
        vendor_user_id: str = "",
        refresh_token: str = "",
        expires_at: str = "",
    ) -> None:
        now = datetime.now(UTC).isoformat()
        async with self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO wearable_connections
                    (user_id, vendor_user_id, access_token, refresh_token, expires_at, connected_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, vendor_user_id, access_token, refresh_token, expires_at, now),
            )
            await db.commit()

    async def has_connection(self, user_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT 1 FROM wearable_connections WHERE user_id = ?", (user_id,)
            )
            return await cursor.fetchone() is not None

    async def get_access_token(self, user_id: str) -> str | None:
        """Return the stored bearer token, or None if not connected."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT access_token FROM wearable_connections WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
            return row[0] if row and row[0] else None

    # -- Daily data ------------------------------------------------------------

    async def save_day(self, user_id: str, data_type: str, date: str, data: dict[str, Any]) -> None:
        """Insert or replace one day of one data type."""
        async with self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO wearable_data (user_id, data_type, date, data)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, data_type, date, json.dumps(data)),
            )
            await db.commit()

    async def get_recent(self, user_id: str, days: int = 7) -> list[WearableRecord] | None:
        """Return up to ``days * 3`` records, newest first.

        Returns None when the user has no wearable connection, and an empty
        list when connected but nothing is stored yet.
        """
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT 1 FROM wearable_connections WHERE user_id = ?", (user_id,)
            )
            if await cursor.fetchone() is None:
                return None

            cursor = await db.execute(
                """
                SELECT date, data_type, data FROM wearable_data
                WHERE user_id = ?
                ORDER BY date DESC
                LIMIT ?
                """,
                (user_id, days * RECORDS_PER_DAY),
            )
            rows = await cursor.fetchall()

        records = []
        for date, data_type, data in rows:
            record = WearableRecord.from_row(date, data_type, data)
            if record is not None:
                records.append(record)
        return records
