"""Memory store factory.

Creates the configured MemoryStore backend.
"""

from typing import Any

from .database import DatabaseManager
from .interface import MemoryStore
from .sqlite_store import SQLiteMemoryStore


def create_memory_store(settings: Any, db_manager: DatabaseManager) -> MemoryStore:
    """Create a memory store based on settings.

    Args:
        settings: Application settings with ``storage_backend`` and
            ``query_row_limit`` attributes. Supported backends: "sqlite".
        db_manager: Initialized database manager.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = getattr(settings, "storage_backend", "sqlite")

    if backend == "sqlite":
        return SQLiteMemoryStore(
            db_manager,
            row_limit=getattr(settings, "query_row_limit", 1000),
        )

    raise ValueError(
        f"Unknown storage backend: '{backend}'. Supported backends: 'sqlite'"
    )
