import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database backing the local storage variant.

    - The database file is located at: <database_dir>/blocks.db
    - The directory is created when missing; a RuntimeError is raised if the
      path exists but is not a directory, or cannot be created.
    - `ensure_database()` creates the `blocks` table and its indexes when they
      do not exist yet. Existing data is never touched, and calls after the
      first one on the same instance are no-ops, so it is safe for
      `connection()` to call it.
    """

    DB_FILENAME = "blocks.db"

    def __init__(self, database_dir: Path | str) -> None:
        db_dir = Path(database_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"Database directory {db_dir} points to a file, not a directory."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / self.DB_FILENAME

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        On first call this creates the `blocks` table (unique `code`) plus an
        index supporting newest-first listing. Subsequent calls on the same
        instance are no-ops.
        """
        if self._initialized:
            return

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS blocks (
                            id INTEGER PRIMARY KEY AUTOINCREMENT,
                            code TEXT NOT NULL UNIQUE,
                            material TEXT NOT NULL,
                            classification TEXT,
                            height REAL NOT NULL,
                            width REAL NOT NULL,
                            length REAL NOT NULL,
                            photo_front TEXT,
                            photo_back TEXT,
                            photo_left TEXT,
                            photo_right TEXT,
                            created_at TEXT NOT NULL,
                            updated_at TEXT NOT NULL
                        )
                        """
                    )

                    # Databases created before classification existed lack the column.
                    cur = await db.execute("PRAGMA table_info(blocks)")
                    cols = await cur.fetchall()
                    col_names = {col[1] for col in cols}
                    if "classification" not in col_names:
                        await db.execute("ALTER TABLE blocks ADD COLUMN classification TEXT")

                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_blocks_created_at ON blocks(created_at DESC)"
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        Rows come back as `aiosqlite.Row` and a `casefold()` SQL function is
        registered for Unicode-aware case-insensitive matching.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            conn.row_factory = aiosqlite.Row
            await conn.create_function("casefold", 1, _casefold, deterministic=True)
            yield conn
        finally:
            await conn.close()
