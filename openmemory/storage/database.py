"""SQLite connection management and schema bootstrap."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite
import structlog

logger = structlog.get_logger()

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS memories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        speaker TEXT NOT NULL,
        message TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        sequence INTEGER NOT NULL DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(timestamp, sequence)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memory_abstracts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        abstract_content TEXT NOT NULL,
        last_processed_timestamp INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp)",
)


def _path_from_url(database_url: str) -> str:
    """Accept either ``sqlite:///path`` or a bare filesystem path."""
    prefix = "sqlite:///"
    if database_url.startswith(prefix):
        return database_url[len(prefix):]
    return database_url


class DatabaseManager:
    """Owns the single aiosqlite connection used by the store."""

    def __init__(self, database_url: str) -> None:
        self.database_path = _path_from_url(database_url)
        self._conn: Optional[aiosqlite.Connection] = None

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> None:
        """Open the connection, enable WAL and create tables."""
        if self._conn is not None:
            return

        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(self.database_path)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA journal_mode=WAL")
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        self._conn = conn
        logger.info("Database initialized", path=self.database_path)

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the open connection."""
        if self._conn is None:
            raise RuntimeError("Database is not initialized")
        yield self._conn

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed", path=self.database_path)
