"""Storage interface for utterances and the running abstract.

Any backend must implement this protocol to be used by the memory
service. Implementations catch their own storage faults: writes report
them as ``StoreResult(status=ERROR)`` and reads degrade to empty results.
"""

from typing import Any, Optional, Protocol

from ..memory.models import AbstractRecord, MemoryRecord, MemoryStats, StoreResult


class MemoryStore(Protocol):
    """Protocol defining the memory store interface."""

    async def save(self, record: MemoryRecord) -> StoreResult:
        """Insert a record.

        Returns SUCCESS, or DUPLICATE when ``(timestamp, sequence)`` is
        already stored (the insert is then a no-op).
        """
        ...

    async def get_latest_abstract(self) -> Optional[AbstractRecord]:
        """Return the most recently updated abstract, or None."""
        ...

    async def upsert_abstract(
        self, content: str, last_processed_timestamp: int
    ) -> StoreResult:
        """Replace the abstract and stamp ``updated_at`` with now."""
        ...

    async def get_messages_after(self, timestamp: int) -> list[MemoryRecord]:
        """Records strictly newer than ``timestamp``, oldest first, capped."""
        ...

    async def get_messages_in_window(self, max_days: float) -> list[MemoryRecord]:
        """Records from the last ``max_days`` days, oldest first, capped."""
        ...

    async def stats(self) -> MemoryStats:
        """Aggregate counts."""
        ...

    async def schema(self) -> dict[str, list[dict[str, Any]]]:
        """Table name to column descriptors."""
        ...
