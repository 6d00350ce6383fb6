"""SQLite-backed per-user upload counter."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from seedflow.interfaces.usage_counter import IUsageCounter
from seedflow.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS upload_usage (
    user_id       TEXT PRIMARY KEY,
    upload_count  INTEGER NOT NULL DEFAULT 0,
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_INCREMENT_SQL = """\
INSERT INTO upload_usage (user_id, upload_count) VALUES (?, 1)
ON CONFLICT(user_id)
DO UPDATE SET upload_count = upload_count + 1,
              updated_at   = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""


class SQLiteUsageCounter(IUsageCounter):
    """Shares the seed database file; keeps its own table."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()

    async def increment(self, user_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INCREMENT_SQL, (user_id,))
                await db.commit()
                cursor = await db.execute(
                    "SELECT upload_count FROM upload_usage WHERE user_id = ?", (user_id,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to increment usage for {user_id}: {exc}",
                provider_name="sqlite",
            ) from exc

        count = int(row[0]) if row else 0
        logger.info("upload_usage_incremented", user_id=user_id, count=count)
        return count

    async def get_count(self, user_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT upload_count FROM upload_usage WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
