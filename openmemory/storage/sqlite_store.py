"""SQLite-backed memory store."""

import time
from typing import Any, Callable, Optional

import structlog

from ..memory.models import (
    AbstractRecord,
    MemoryRecord,
    MemoryStats,
    SaveStatus,
    StoreResult,
)
from .database import DatabaseManager

logger = structlog.get_logger()

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_ROW_LIMIT = 1000


class SQLiteMemoryStore:
    """Memory store over the ``memories`` and ``memory_abstracts`` tables.

    Storage faults never escape: writes return an ERROR result, reads
    return empty collections or None.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        row_limit: int = DEFAULT_ROW_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db_manager
        self.row_limit = row_limit
        self._clock = clock

    async def save(self, record: MemoryRecord) -> StoreResult:
        """Insert a record, ignoring ``(timestamp, sequence)`` collisions."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    INSERT OR IGNORE INTO memories (speaker, message, timestamp, sequence)
                    VALUES (?, ?, ?, ?)
                    """,
                    (record.speaker, record.message, record.timestamp, record.sequence),
                )
                await conn.commit()
                inserted = cursor.rowcount > 0
        except Exception as exc:
            logger.error("Failed to save memory", error=str(exc))
            return StoreResult(SaveStatus.ERROR, str(exc))

        if not inserted:
            logger.info(
                "Memory already exists",
                timestamp=record.timestamp,
                sequence=record.sequence,
            )
            return StoreResult(SaveStatus.DUPLICATE, "Memory already exists")

        logger.info(
            "Saved memory",
            speaker=record.speaker,
            timestamp=record.timestamp,
            sequence=record.sequence,
        )
        return StoreResult(SaveStatus.SUCCESS, "Memory saved successfully")

    async def get_latest_abstract(self) -> Optional[AbstractRecord]:
        """Return the most recently updated abstract row."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT * FROM memory_abstracts
                    ORDER BY updated_at DESC, id DESC
                    LIMIT 1
                    """
                )
                row = await cursor.fetchone()
        except Exception as exc:
            logger.error("Failed to read latest abstract", error=str(exc))
            return None
        return AbstractRecord.from_row(row) if row else None

    async def upsert_abstract(
        self, content: str, last_processed_timestamp: int
    ) -> StoreResult:
        """Overwrite the current abstract row, inserting one if none exists.

        The target row is the latest one, so databases holding several
        abstract rows keep converging on a single live row.
        """
        try:
            async with self.db.get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO memory_abstracts
                        (id, abstract_content, last_processed_timestamp, updated_at)
                    VALUES (
                        (SELECT id FROM memory_abstracts
                         ORDER BY updated_at DESC, id DESC LIMIT 1),
                        ?, ?, CURRENT_TIMESTAMP
                    )
                    ON CONFLICT(id) DO UPDATE SET
                        abstract_content = excluded.abstract_content,
                        last_processed_timestamp = excluded.last_processed_timestamp,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (content, last_processed_timestamp),
                )
                await conn.commit()
        except Exception as exc:
            logger.error("Failed to save memory abstract", error=str(exc))
            return StoreResult(SaveStatus.ERROR, str(exc))

        logger.info(
            "Saved memory abstract",
            last_processed_timestamp=last_processed_timestamp,
        )
        return StoreResult(SaveStatus.SUCCESS, "Memory abstract saved successfully")

    async def get_messages_after(self, timestamp: int) -> list[MemoryRecord]:
        """Records with timestamp > ``timestamp``."""
        return await self._select_records(
            "timestamp > ?", timestamp, "messages after timestamp"
        )

    async def get_messages_in_window(self, max_days: float) -> list[MemoryRecord]:
        """Records with timestamp >= now - max_days."""
        cutoff = int(self._clock()) - int(max_days * SECONDS_PER_DAY)
        return await self._select_records(
            "timestamp >= ?", cutoff, "memories by date range"
        )

    async def _select_records(
        self, condition: str, value: int, what: str
    ) -> list[MemoryRecord]:
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    f"""
                    SELECT * FROM memories
                    WHERE {condition}
                    ORDER BY timestamp ASC, sequence ASC
                    LIMIT ?
                    """,
                    (value, self.row_limit),
                )
                rows = await cursor.fetchall()
        except Exception as exc:
            logger.error("Failed to query memories", query=what, error=str(exc))
            return []
        return [MemoryRecord.from_row(row) for row in rows]

    async def stats(self) -> MemoryStats:
        """Count memories, distinct speakers and abstract rows."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT
                        (SELECT COUNT(*) FROM memories),
                        (SELECT COUNT(DISTINCT speaker) FROM memories),
                        (SELECT COUNT(*) FROM memory_abstracts)
                    """
                )
                row = await cursor.fetchone()
        except Exception as exc:
            logger.error("Failed to get memory stats", error=str(exc))
            return MemoryStats()
        return MemoryStats(
            totalMemories=row[0],
            uniqueSpeakers=row[1],
            abstracts=row[2],
        )

    async def schema(self) -> dict[str, list[dict[str, Any]]]:
        """Describe user tables via PRAGMA table_info."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
                    ORDER BY name
                    """
                )
                tables = [row[0] for row in await cursor.fetchall()]

                schema: dict[str, list[dict[str, Any]]] = {}
                for table in tables:
                    cursor = await conn.execute(f'PRAGMA table_info("{table}")')
                    schema[table] = [dict(row) for row in await cursor.fetchall()]
        except Exception as exc:
            logger.error("Failed to get schema", error=str(exc))
            return {}
        return schema
