"""Tests for the memory store factory."""

from unittest.mock import MagicMock

import pytest

from openmemory.storage.factory import create_memory_store
from openmemory.storage.sqlite_store import SQLiteMemoryStore


class TestCreateMemoryStore:
    """Tests for create_memory_store."""

    def test_sqlite_backend(self) -> None:
        """The sqlite backend is built with the configured row limit."""
        settings = MagicMock()
        settings.storage_backend = "sqlite"
        settings.query_row_limit = 250
        db = MagicMock()

        store = create_memory_store(settings, db)

        assert isinstance(store, SQLiteMemoryStore)
        assert store.row_limit == 250
        assert store.db is db

    def test_unknown_backend_raises(self) -> None:
        """Unknown backends are rejected."""
        settings = MagicMock()
        settings.storage_backend = "postgres"
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_memory_store(settings, MagicMock())
