"""Memory service: the operations exposed to tool callers."""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from ..storage.interface import MemoryStore
from .merger import AbstractMerger, format_message_line
from .models import (
    MemoryRecord,
    MemoryStats,
    RawMessage,
    RecallResult,
    RecentMemories,
    SaveResult,
    SaveStatus,
    UpdateAbstractResult,
)
from .sequence import SequenceAllocator
from .text import normalize_message

logger = structlog.get_logger()

DEFAULT_MIN_MESSAGE_LENGTH = 3
DEFAULT_RECENT_DAYS = 3
NO_ABSTRACT_TEXT = "No memory abstract available."
NO_RECENT_TEXT = "No recent memories found."


class MemoryService:
    """Save utterances, maintain the abstract, and project recent history."""

    def __init__(
        self,
        store: MemoryStore,
        merger: Optional[AbstractMerger] = None,
        allocator: Optional[SequenceAllocator] = None,
        min_message_length: int = DEFAULT_MIN_MESSAGE_LENGTH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._merger = merger if merger is not None else AbstractMerger(store)
        self._allocator = allocator if allocator is not None else SequenceAllocator()
        self._min_length = min_message_length
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    async def save(
        self,
        speaker: str,
        message: str,
        timestamp: Optional[int] = None,
        context: Optional[str] = None,
    ) -> SaveResult:
        """Normalize and store one utterance.

        ``context`` is accepted for caller convenience and only logged; the
        record model has no column for it.
        """
        logger.info("Saving memory", speaker=speaker, context=context)
        if timestamp is None:
            timestamp = self._now()

        cleaned = normalize_message(message)
        if len(cleaned) < self._min_length:
            logger.info("Skipping empty or too short message", cleaned=cleaned)
            return SaveResult(
                status=SaveStatus.SKIPPED,
                message="Message too short after cleaning",
            )

        record = MemoryRecord(
            speaker=speaker,
            message=cleaned,
            timestamp=timestamp,
            sequence=self._allocator.allocate(timestamp),
        )
        result = await self._store.save(record)
        return SaveResult(status=result.status, message=result.message)

    async def recall_abstract(self, force_refresh: bool = False) -> RecallResult:
        """Run the merger and return the resulting abstract.

        This writes: a recall advances the watermark whenever new messages
        were folded in.
        """
        logger.info("Recalling memory abstract", force_refresh=force_refresh)
        try:
            result = await self._merger.run(force_refresh=force_refresh)
        except Exception as exc:
            logger.exception("Error recalling memory abstract")
            return RecallResult(memories=f"Error recalling memories: {exc}")

        created_at = None
        if result.watermark is not None:
            latest = await self._store.get_latest_abstract()
            created_at = latest.created_at if latest else None
        return RecallResult(
            memories=result.content,
            last_updated=result.watermark,
            created_at=created_at,
        )

    async def latest_abstract(self) -> RecallResult:
        """Read the stored abstract without merging."""
        latest = await self._store.get_latest_abstract()
        if latest is None:
            return RecallResult(memories=NO_ABSTRACT_TEXT)
        return RecallResult(
            memories=latest.abstract_content or NO_ABSTRACT_TEXT,
            last_updated=latest.last_processed_timestamp,
            created_at=latest.created_at,
        )

    async def update_abstract(
        self, content: str, last_processed_timestamp: Optional[int] = None
    ) -> UpdateAbstractResult:
        """Overwrite the abstract with caller-merged text, bypassing the merger."""
        logger.info("Updating memory abstract with new content")
        timestamp = (
            last_processed_timestamp
            if last_processed_timestamp is not None
            else self._now()
        )

        result = await self._store.upsert_abstract(content, timestamp)
        if result.status is not SaveStatus.SUCCESS:
            return UpdateAbstractResult(
                status=SaveStatus.ERROR,
                message=f"Error updating memory abstract: {result.message}",
            )

        return UpdateAbstractResult(
            status=SaveStatus.SUCCESS,
            message="Memory abstract updated successfully",
            abstract_content=content,
            last_processed_timestamp=timestamp,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )

    async def get_recent(self, max_days: float = DEFAULT_RECENT_DAYS) -> RecentMemories:
        """Raw and formatted view of the last ``max_days`` days. Read-only."""
        logger.info("Getting recent memories", max_days=max_days)
        try:
            records = await self._store.get_messages_in_window(max_days)
            if not records:
                return RecentMemories(recent_memories=NO_RECENT_TEXT)

            raw = [
                RawMessage(
                    speaker=record.speaker,
                    message=record.message,
                    timestamp=str(record.timestamp),
                    sequence=record.sequence,
                    datetime=datetime.fromtimestamp(
                        record.timestamp, tz=timezone.utc
                    ).isoformat(),
                )
                for record in records
            ]
            text = "\n".join(
                format_message_line(record, with_sequence=False) for record in records
            )
        except Exception as exc:
            logger.exception("Error getting recent memories")
            return RecentMemories(
                recent_memories=f"Error getting recent memories: {exc}"
            )
        return RecentMemories(raw_messages=raw, recent_memories=text)

    async def stats(self) -> MemoryStats:
        return await self._store.stats()

    async def schema(self) -> dict[str, list[dict[str, Any]]]:
        return await self._store.schema()

    async def summarize_for_agent(self, agent_name: str, days_back: int = 7) -> str:
        """Short stats report used by the ``memory_summary`` prompt."""
        stats = await self._store.stats()
        return (
            f"Memory Summary for Agent: {agent_name}\n\n"
            f"Looking back {days_back} days:\n"
            f"- Total memories stored: {stats.totalMemories}\n"
            f"- Unique speakers: {stats.uniqueSpeakers}\n"
            f"- Memory abstracts: {stats.abstracts}\n\n"
            "This is a summary of the stored conversation memories and "
            "abstracts for the specified agent."
        )
