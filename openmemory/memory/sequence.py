"""Per-timestamp sequence numbers for messages saved within the same second."""

import time
from dataclasses import dataclass
from typing import Callable, Dict

import structlog

logger = structlog.get_logger()

DEFAULT_SEQUENCE_CAP = 1000
DEFAULT_EVICTION_SECONDS = 10.0


@dataclass
class _Counter:
    count: int
    last_update: float


class SequenceAllocator:
    """Hands out 0, 1, 2, ... for repeated timestamps.

    Counters live in process memory only. Two processes writing the same
    timestamp can allocate the same sequence; the storage uniqueness
    constraint then drops one of the inserts as a duplicate.

    Counts wrap at ``cap``: more than ``cap`` saves for one timestamp inside
    the eviction window reuse sequence numbers and collide in storage.
    """

    def __init__(
        self,
        cap: int = DEFAULT_SEQUENCE_CAP,
        eviction_seconds: float = DEFAULT_EVICTION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if cap <= 0:
            raise ValueError("cap must be positive")
        self.cap = cap
        self.eviction_seconds = eviction_seconds
        self._clock = clock
        self._counters: Dict[str, _Counter] = {}

    def allocate(self, timestamp: int) -> int:
        """Return the next sequence number for ``timestamp``."""
        now = self._clock()
        self._evict(now)

        key = str(timestamp)
        counter = self._counters.get(key)
        if counter is None:
            self._counters[key] = _Counter(count=0, last_update=now)
            return 0

        counter.count = (counter.count + 1) % self.cap
        counter.last_update = now
        if counter.count == 0:
            logger.warning(
                "Sequence wrapped for timestamp",
                timestamp=timestamp,
                cap=self.cap,
            )
        return counter.count

    def _evict(self, now: float) -> None:
        """Drop counters idle for longer than the eviction window."""
        stale = [
            key
            for key, counter in self._counters.items()
            if now - counter.last_update > self.eviction_seconds
        ]
        for key in stale:
            del self._counters[key]

    def __len__(self) -> int:
        return len(self._counters)
