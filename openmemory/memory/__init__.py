"""Conversation memory: normalization, sequencing, abstracts and the service facade."""

from .merger import (
    INCREMENTAL_WINDOW,
    NO_HISTORY_SENTINEL,
    REBUILD_WINDOW,
    AbstractMerger,
    LLMAbstractStrategy,
    MergeMode,
    MergeResult,
    TemplateAbstractStrategy,
    WindowPolicy,
)
from .models import AbstractRecord, MemoryRecord, SaveStatus, StoreResult
from .sequence import SequenceAllocator
from .service import MemoryService
from .text import normalize_message

__all__ = [
    "AbstractMerger",
    "AbstractRecord",
    "INCREMENTAL_WINDOW",
    "LLMAbstractStrategy",
    "MemoryRecord",
    "MemoryService",
    "MergeMode",
    "MergeResult",
    "NO_HISTORY_SENTINEL",
    "REBUILD_WINDOW",
    "SaveStatus",
    "SequenceAllocator",
    "StoreResult",
    "TemplateAbstractStrategy",
    "WindowPolicy",
    "normalize_message",
]
