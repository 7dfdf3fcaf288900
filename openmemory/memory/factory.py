"""Memory service factory.

Wires settings into the allocator, window policies and abstract strategy.
"""

from dataclasses import replace
from typing import Any, Optional

from ..llm.chat_provider import ChatProvider, create_chat_provider
from ..storage.interface import MemoryStore
from .merger import (
    INCREMENTAL_WINDOW,
    REBUILD_WINDOW,
    AbstractMerger,
    AbstractStrategy,
    LLMAbstractStrategy,
    TemplateAbstractStrategy,
)
from .sequence import SequenceAllocator
from .service import MemoryService


def create_abstract_strategy(
    settings: Any, chat_provider: Optional[ChatProvider] = None
) -> AbstractStrategy:
    """Create the abstract strategy named by ``settings.abstract_strategy``.

    Raises:
        ValueError: If the strategy name is unknown.
    """
    name = getattr(settings, "abstract_strategy", "template")

    if name == "template":
        return TemplateAbstractStrategy()
    if name == "llm":
        provider = chat_provider or create_chat_provider(settings)
        return LLMAbstractStrategy(provider)

    raise ValueError(
        f"Unknown abstract strategy: '{name}'. "
        f"Supported strategies: 'template', 'llm'"
    )


def create_memory_service(
    settings: Any,
    store: MemoryStore,
    chat_provider: Optional[ChatProvider] = None,
) -> MemoryService:
    """Build a MemoryService over ``store`` from settings."""
    merger = AbstractMerger(
        store,
        strategy=create_abstract_strategy(settings, chat_provider),
        incremental_window=replace(
            INCREMENTAL_WINDOW, size=settings.incremental_window_size
        ),
        rebuild_window=replace(REBUILD_WINDOW, size=settings.rebuild_window_size),
        lookback_days=settings.rebuild_lookback_days,
    )
    allocator = SequenceAllocator(
        cap=settings.sequence_cap,
        eviction_seconds=settings.sequence_eviction_seconds,
    )
    return MemoryService(
        store,
        merger=merger,
        allocator=allocator,
        min_message_length=settings.min_message_length,
    )
