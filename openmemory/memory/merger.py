"""Abstract merging: fold new messages into the running summary.

Two modes:

- INCREMENTAL: an abstract exists and no refresh was forced. Only records
  newer than the abstract's watermark are read; the *first*
  ``incremental_window`` formatted lines are merged into the previous text.
- FULL_REBUILD: no abstract, or ``force_refresh``. Every record in the
  lookback window is read; the *last* ``rebuild_window`` formatted lines
  make up the new abstract.

The two truncation directions differ on purpose and are kept as separate
``WindowPolicy`` objects so each can be tested and tuned alone.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol, Sequence

import structlog

from ..storage.interface import MemoryStore
from .models import MemoryRecord, SaveStatus

logger = structlog.get_logger()

NO_HISTORY_SENTINEL = "No previous conversations found."
UNKNOWN_TIME = "Unknown time"
DEFAULT_LOOKBACK_DAYS = 14


def capitalize_speaker(speaker: str) -> str:
    """Upper-case the first character only; the rest is left as is."""
    return speaker[:1].upper() + speaker[1:]


def format_timestamp(timestamp: int) -> str:
    """Render epoch seconds as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )


def format_message_line(record: MemoryRecord, with_sequence: bool = True) -> str:
    """Canonical one-line form of a record.

    ``[2024-01-01 12:00:00_3] User: hello`` or ``[Unknown time] User: hello``
    when the timestamp cannot be rendered.
    """
    speaker = capitalize_speaker(record.speaker or "unknown")
    try:
        stamp = format_timestamp(record.timestamp)
    except (OverflowError, OSError, ValueError, TypeError):
        return f"[{UNKNOWN_TIME}] {speaker}: {record.message}"
    if with_sequence:
        stamp = f"{stamp}_{record.sequence}"
    return f"[{stamp}] {speaker}: {record.message}"


@dataclass(frozen=True)
class WindowPolicy:
    """Which formatted lines are handed to the strategy."""

    name: str
    size: int
    from_end: bool

    def apply(self, lines: Sequence[str]) -> list[str]:
        if self.from_end:
            return list(lines[-self.size:])
        return list(lines[: self.size])


# Oldest of the new batch first.
INCREMENTAL_WINDOW = WindowPolicy(name="incremental", size=10, from_end=False)
# Most recent slice.
REBUILD_WINDOW = WindowPolicy(name="rebuild", size=5, from_end=True)


class AbstractStrategy(Protocol):
    """Produces abstract text from already-windowed message lines."""

    async def merge(self, previous: str, lines: list[str]) -> str:
        """Fold ``lines`` into the previous abstract."""
        ...

    async def rebuild(self, lines: list[str], total_messages: int) -> str:
        """Build a fresh abstract from ``lines``."""
        ...


class TemplateAbstractStrategy:
    """Fixed-prose abstract, no model involved."""

    async def merge(self, previous: str, lines: list[str]) -> str:
        recent = "\n".join(lines)
        return (
            f"Previous Summary:\n{previous}\n\n"
            f"Recent Activity:\n{recent}\n\n"
            "Combined Understanding: The conversation continues with recent "
            "interactions building upon the previous context."
        )

    async def rebuild(self, lines: list[str], total_messages: int) -> str:
        recent = "\n".join(lines)
        return (
            f"Conversation Summary ({total_messages} total messages):\n\n"
            f"Recent Activity:\n{recent}\n\n"
            "This represents the stored conversation history for this user "
            "and agent."
        )


MERGE_SYSTEM = """\
You maintain a running memory summary of conversations between a user and an
AI agent. Merge the previous summary with the recent activity into one updated
summary. Keep durable facts, decisions and open tasks; drop small talk.
Reply with the summary text only."""

REBUILD_SYSTEM = """\
Summarize this conversation history between a user and an AI agent for later
recall. Keep durable facts, decisions and open tasks; drop small talk.
Reply with the summary text only."""


class LLMAbstractStrategy:
    """Asks a chat model to write the abstract.

    Any provider failure falls back to the template text for the same lines,
    so a recall never fails because the model is unavailable.
    """

    def __init__(
        self,
        chat_provider,
        fallback: Optional[AbstractStrategy] = None,
        max_tokens: int = 1024,
    ) -> None:
        self._provider = chat_provider
        self._fallback = fallback or TemplateAbstractStrategy()
        self._max_tokens = max_tokens

    async def merge(self, previous: str, lines: list[str]) -> str:
        recent = "\n".join(lines)
        prompt = f"Previous summary:\n{previous}\n\nRecent activity:\n{recent}"
        text = await self._complete(MERGE_SYSTEM, prompt)
        if text is None:
            return await self._fallback.merge(previous, lines)
        return text

    async def rebuild(self, lines: list[str], total_messages: int) -> str:
        history = "\n".join(lines)
        prompt = f"Conversation history ({total_messages} total messages):\n{history}"
        text = await self._complete(REBUILD_SYSTEM, prompt)
        if text is None:
            return await self._fallback.rebuild(lines, total_messages)
        return text

    async def _complete(self, system: str, prompt: str) -> Optional[str]:
        if not self._provider:
            return None
        try:
            response = await self._provider.chat(
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            logger.warning("Abstract generation failed", error=str(exc))
            return None
        content = response.content.strip()
        return content or None


class MergeMode(str, Enum):
    INCREMENTAL = "incremental"
    FULL_REBUILD = "full_rebuild"


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merger run."""

    content: str
    mode: MergeMode
    watermark: Optional[int]
    persisted: bool
    processed: int = 0


class AbstractMerger:
    """Decides between incremental merge and full rebuild and persists the result."""

    def __init__(
        self,
        store: MemoryStore,
        strategy: Optional[AbstractStrategy] = None,
        incremental_window: WindowPolicy = INCREMENTAL_WINDOW,
        rebuild_window: WindowPolicy = REBUILD_WINDOW,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> None:
        self._store = store
        self._strategy = strategy or TemplateAbstractStrategy()
        self.incremental_window = incremental_window
        self.rebuild_window = rebuild_window
        self.lookback_days = lookback_days

    async def run(self, force_refresh: bool = False) -> MergeResult:
        """Produce the current abstract, writing it back when it changed."""
        existing = None if force_refresh else await self._store.get_latest_abstract()

        if existing is not None:
            logger.info(
                "Found existing memory abstract, doing incremental processing",
                watermark=existing.last_processed_timestamp,
            )
            return await self._incremental(
                existing.abstract_content, existing.last_processed_timestamp
            )

        logger.info(
            "No existing abstract or force refresh, processing all messages",
            force_refresh=force_refresh,
        )
        return await self._rebuild()

    async def _incremental(self, previous: str, watermark: int) -> MergeResult:
        records = await self._store.get_messages_after(watermark)
        if not records:
            logger.info("No new messages to process, returning existing abstract")
            return MergeResult(
                content=previous,
                mode=MergeMode.INCREMENTAL,
                watermark=watermark,
                persisted=False,
            )

        logger.info("Found new messages to process", count=len(records))
        lines = [format_message_line(record) for record in records]
        content = await self._strategy.merge(
            previous, self.incremental_window.apply(lines)
        )
        new_watermark = max(watermark, max(record.timestamp for record in records))
        persisted = await self._persist(content, new_watermark)
        return MergeResult(
            content=content,
            mode=MergeMode.INCREMENTAL,
            watermark=new_watermark,
            persisted=persisted,
            processed=len(records),
        )

    async def _rebuild(self) -> MergeResult:
        records = await self._store.get_messages_in_window(self.lookback_days)
        if not records:
            logger.info("No messages found")
            return MergeResult(
                content=NO_HISTORY_SENTINEL,
                mode=MergeMode.FULL_REBUILD,
                watermark=None,
                persisted=False,
            )

        lines = [format_message_line(record) for record in records]
        content = await self._strategy.rebuild(
            self.rebuild_window.apply(lines), len(lines)
        )
        watermark = max(record.timestamp for record in records)
        persisted = await self._persist(content, watermark)
        return MergeResult(
            content=content,
            mode=MergeMode.FULL_REBUILD,
            watermark=watermark,
            persisted=persisted,
            processed=len(records),
        )

    async def _persist(self, content: str, watermark: int) -> bool:
        result = await self._store.upsert_abstract(content, watermark)
        if result.status is not SaveStatus.SUCCESS:
            logger.warning("Abstract not persisted", error=result.message)
            return False
        return True
