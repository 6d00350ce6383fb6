"""SQLite-backed seed store.

Persists seeds and their derived study materials to a local SQLite database
(``data/seeds.db`` by default) using ``aiosqlite`` for async I/O.  Each
operation opens its own connection, so a delete issued right after a create
is visible to every subsequent read.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog
from pydantic import ValidationError as PydanticValidationError

from seedflow.interfaces.seed_store import ISeedStore
from seedflow.models.seed import Seed
from seedflow.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/seeds.db")
_PROVIDER_NAME = "sqlite"

_CREATE_SEEDS_SQL = """\
CREATE TABLE IF NOT EXISTS seeds (
    id                   TEXT PRIMARY KEY,
    user_id              TEXT NOT NULL,
    title                TEXT NOT NULL,
    content_kind         TEXT NOT NULL,
    source_ref           TEXT,
    extracted_text       TEXT NOT NULL DEFAULT '',
    explanation          TEXT,
    intent               TEXT,
    processing_status    TEXT NOT NULL,
    confidence_score     REAL,
    extraction_metadata  TEXT NOT NULL DEFAULT '{}',
    error_message        TEXT,
    language_code        TEXT,
    file_size            INTEGER,
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL
);
"""

_CREATE_MATERIALS_SQL = """\
CREATE TABLE IF NOT EXISTS seed_materials (
    seed_id     TEXT NOT NULL,
    kind        TEXT NOT NULL,
    content     TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (seed_id, kind)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_seeds_user ON seeds(user_id, created_at);",
]

_COLUMNS = (
    "id",
    "user_id",
    "title",
    "content_kind",
    "source_ref",
    "extracted_text",
    "explanation",
    "intent",
    "processing_status",
    "confidence_score",
    "extraction_metadata",
    "error_message",
    "language_code",
    "file_size",
    "created_at",
    "updated_at",
)

_INSERT_SQL = (
    f"INSERT INTO seeds ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)});"
)

_UPDATABLE_FIELDS = frozenset(_COLUMNS) - {"id", "user_id", "created_at", "updated_at"}


def _seed_to_row(seed: Seed) -> tuple:
    data = seed.model_dump(mode="json")
    data["extraction_metadata"] = json.dumps(data["extraction_metadata"])
    return tuple(data[column] for column in _COLUMNS)


def _row_to_seed(row: aiosqlite.Row) -> Seed:
    data = dict(row)
    data["extraction_metadata"] = json.loads(data["extraction_metadata"] or "{}")
    return Seed.model_validate(data)


class SQLiteSeedStore(ISeedStore):
    """SQLite-backed seed persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_SEEDS_SQL)
            await db.execute(_CREATE_MATERIALS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("seed_db_initialized", path=str(self._db_path))

    async def create_seed(self, seed: Seed) -> Seed:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_SQL, _seed_to_row(seed))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to create seed {seed.id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug("seed_created", seed_id=seed.id, status=seed.processing_status.value)
        return seed

    async def update_seed(self, seed_id: str, **fields: Any) -> Seed:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise PersistenceError(
                message=f"Cannot update seed fields: {sorted(unknown)}",
                provider_name=_PROVIDER_NAME,
            )

        current = await self.get_seed(seed_id)
        if current is None:
            raise PersistenceError(
                message=f"Seed {seed_id} not found",
                provider_name=_PROVIDER_NAME,
            )

        try:
            updated = Seed.model_validate(
                {
                    **current.model_dump(),
                    **fields,
                    "updated_at": datetime.now(tz=timezone.utc),  # noqa: UP017
                }
            )
        except PydanticValidationError as exc:
            raise PersistenceError(
                message=f"Invalid update for seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        row = dict(zip(_COLUMNS, _seed_to_row(updated), strict=True))
        assignments = ", ".join(f"{column} = ?" for column in (*fields, "updated_at"))
        values = [row[column] for column in (*fields, "updated_at")]

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    f"UPDATE seeds SET {assignments} WHERE id = ?;",  # noqa: S608
                    (*values, seed_id),
                )
                await db.commit()
                changed = cursor.rowcount
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to update seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if changed == 0:
            raise PersistenceError(
                message=f"Seed {seed_id} was deleted during update",
                provider_name=_PROVIDER_NAME,
            )

        logger.debug("seed_updated", seed_id=seed_id, fields=sorted(fields))
        return updated

    async def delete_seed(self, seed_id: str, user_id: str | None = None) -> bool:
        sql = "DELETE FROM seeds WHERE id = ?"
        params: tuple = (seed_id,)
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (seed_id, user_id)

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                deleted = cursor.rowcount > 0
                if deleted:
                    await db.execute(
                        "DELETE FROM seed_materials WHERE seed_id = ?;", (seed_id,)
                    )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to delete seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug("seed_deleted", seed_id=seed_id, existed=deleted)
        return deleted

    async def get_seed(self, seed_id: str, user_id: str | None = None) -> Seed | None:
        sql = f"SELECT {', '.join(_COLUMNS)} FROM seeds WHERE id = ?"  # noqa: S608
        params: tuple = (seed_id,)
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (seed_id, user_id)

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to read seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        return _row_to_seed(row) if row is not None else None

    async def list_seeds(self, user_id: str, limit: int = 50) -> list[Seed]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    f"SELECT {', '.join(_COLUMNS)} FROM seeds "  # noqa: S608
                    "WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
                    (user_id, limit),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to list seeds for {user_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return [_row_to_seed(row) for row in rows]

    async def save_materials(self, seed_id: str, kind: str, content: Any) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    "INSERT INTO seed_materials (seed_id, kind, content) VALUES (?, ?, ?) "
                    "ON CONFLICT(seed_id, kind) DO UPDATE SET content = excluded.content;",
                    (seed_id, kind, json.dumps(content)),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to save {kind} for seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.debug("materials_saved", seed_id=seed_id, kind=kind)

    async def get_materials(self, seed_id: str) -> dict[str, Any]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT kind, content FROM seed_materials WHERE seed_id = ?",
                    (seed_id,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to read materials for seed {seed_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return {kind: json.loads(content) for kind, content in rows}

    def get_provider_name(self) -> str:
        return "sqlite_seed_store"
