"""Async Data Access Layer for the local `blocks` table.

Provides the BlockDAL class with async CRUD and search operations on top of
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import aiosqlite

from models.block_record import WRITABLE_FIELDS, BlockRecord, next_timestamp, utc_timestamp
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import BlockNotFoundError, StoreUnavailableError, UniqueViolationError

LOGGER = logging.getLogger(__name__)


class BlockDAL:
    """Data access layer for block records stored in SQLite.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection` with `aiosqlite.Row` rows and a `casefold`
    SQL function).
    """

    _COLUMNS = ("id",) + WRITABLE_FIELDS + ("created_at", "updated_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _ORDER = "ORDER BY created_at DESC, id DESC"

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create(self, fields: Mapping[str, Any]) -> BlockRecord:
        """Insert a new block row and return the stored record.

        Args:
            fields: Column values; keys outside the writable columns are ignored.

        Raises:
            UniqueViolationError: If another block already uses the code.
        """
        values = {col: fields.get(col) for col in WRITABLE_FIELDS}
        now = utc_timestamp()
        columns = list(values) + ["created_at", "updated_at"]
        params = list(values.values()) + [now, now]
        placeholders = ", ".join("?" for _ in columns)

        async with self._db.connection() as conn:
            try:
                cur = await conn.execute(
                    f"INSERT INTO blocks ({', '.join(columns)}) VALUES ({placeholders})",
                    tuple(params),
                )
                await conn.commit()
            except aiosqlite.IntegrityError as exc:
                if self._is_unique_violation(exc):
                    raise UniqueViolationError("Block code already exists") from exc
                raise
            return await self._fetch_by_id(conn, cur.lastrowid)

    async def get_all(self) -> List[BlockRecord]:
        async with self._db.connection() as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM blocks {self._ORDER}")
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def get_by_id(self, block_id: int) -> Optional[BlockRecord]:
        """Return the BlockRecord for `block_id`, or None if not found."""
        async with self._db.connection() as conn:
            return await self._fetch_by_id(conn, block_id)

    async def update(self, block_id: int, fields: Mapping[str, Any]) -> BlockRecord:
        """Overwrite the given columns of a block and refresh `updated_at`.

        An empty `fields` mapping still counts as an update: only the
        timestamp changes.

        Raises:
            BlockNotFoundError: If no block has `block_id`.
            UniqueViolationError: If the new code collides with another block.
        """
        updates = {col: fields[col] for col in WRITABLE_FIELDS if col in fields}

        async with self._db.connection() as conn:
            existing = await self._fetch_by_id(conn, block_id)
            if existing is None:
                raise BlockNotFoundError(block_id)

            updates["updated_at"] = next_timestamp(existing.updated_at)
            assignments = ", ".join(f"{col} = ?" for col in updates)
            params = list(updates.values()) + [block_id]
            try:
                await conn.execute(f"UPDATE blocks SET {assignments} WHERE id = ?", tuple(params))
                await conn.commit()
            except aiosqlite.IntegrityError as exc:
                if self._is_unique_violation(exc):
                    raise UniqueViolationError("Block code already exists") from exc
                raise
            return await self._fetch_by_id(conn, block_id)

    async def delete(self, block_id: int) -> bool:
        """Delete a block row by id. Returns True if a row was deleted."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM blocks WHERE id = ?", (block_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    async def search(self, query: str) -> List[BlockRecord]:
        """Blocks whose code or material contains `query`, ignoring case.

        `instr` keeps `%` and `_` in the query literal, unlike LIKE.
        """
        needle = (query or "").casefold()
        if not needle:
            return await self.get_all()

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM blocks "
                "WHERE instr(casefold(code), ?) > 0 OR instr(casefold(material), ?) > 0 "
                f"{self._ORDER}",
                (needle, needle),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def ping(self) -> None:
        try:
            async with self._db.connection() as conn:
                await conn.execute("SELECT 1")
        except (aiosqlite.Error, OSError) as exc:
            LOGGER.error("SQLite database unreachable: %s", exc)
            raise StoreUnavailableError("Database unreachable") from exc

    async def referenced_photos(self) -> set:
        """Every photo reference currently stored on any block."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT photo_front, photo_back, photo_left, photo_right FROM blocks"
            )
            rows = await cur.fetchall()
        return {ref for row in rows for ref in row if ref}

    async def _fetch_by_id(self, conn: aiosqlite.Connection, block_id: int) -> Optional[BlockRecord]:
        cur = await conn.execute(
            f"SELECT {self._COLUMN_LIST} FROM blocks WHERE id = ?",
            (block_id,),
        )
        row = await cur.fetchone()
        return self._row_to_record(row) if row else None

    @staticmethod
    def _is_unique_violation(exc: aiosqlite.IntegrityError) -> bool:
        return "UNIQUE" in str(exc).upper()

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> BlockRecord:
        """Convert a DB row into a BlockRecord."""
        return BlockRecord.from_mapping(dict(row))
