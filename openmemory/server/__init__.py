"""Tool-protocol surface of the memory service."""

from .app import create_server
from .handlers import MemoryHandlers

__all__ = ["MemoryHandlers", "create_server"]
