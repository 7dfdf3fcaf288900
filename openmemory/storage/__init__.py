"""Persistence for utterances and the memory abstract."""

from .database import DatabaseManager
from .factory import create_memory_store
from .interface import MemoryStore
from .sqlite_store import SQLiteMemoryStore

__all__ = [
    "DatabaseManager",
    "MemoryStore",
    "SQLiteMemoryStore",
    "create_memory_store",
]
