"""Persistent conversation memory and running abstract for AI agents."""

__version__ = "0.1.0"
