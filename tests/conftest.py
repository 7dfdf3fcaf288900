"""Shared fixtures: temporary SQLite database, store and a controllable clock."""

import pytest

from openmemory.memory.models import MemoryRecord
from openmemory.storage.database import DatabaseManager
from openmemory.storage.sqlite_store import SQLiteMemoryStore

# 2023-11-14 22:13:20 UTC
NOW = 1_700_000_000


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_record(
    timestamp: int,
    sequence: int = 0,
    speaker: str = "user",
    message: str = "hello there",
) -> MemoryRecord:
    return MemoryRecord(
        speaker=speaker, message=message, timestamp=timestamp, sequence=sequence
    )


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def make_record():
    """Factory for MemoryRecord with sensible defaults."""
    return _make_record


@pytest.fixture
async def db_manager(tmp_path):
    """Initialized database manager over a temporary file."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'memory.sqlite'}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def store(db_manager, clock):
    """SQLite store whose window queries see ``NOW`` as the current time."""
    return SQLiteMemoryStore(db_manager, clock=clock)
