"""Tool, resource and prompt handlers.

Transport-independent: each handler validates its arguments, calls the
memory service and returns a JSON-ready dict. Bad arguments and unknown
names come back as ``{"error": ...}`` instead of raising.
"""

import json
from typing import Any, Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..memory.service import MemoryService

logger = structlog.get_logger()


# ============================================================================
# Input Models
# ============================================================================


class SaveMemoryInput(BaseModel):
    """Input for saving one conversation message."""

    model_config = ConfigDict(extra="forbid")

    speaker: str = Field(..., description="Who spoke: agent, user, or system")
    message: str = Field(..., description="The message content")
    context: Optional[str] = Field(
        None, description="Additional context about the conversation"
    )


class RecallMemoryAbstractInput(BaseModel):
    """Input for recalling the memory abstract."""

    model_config = ConfigDict(extra="forbid")

    force_refresh: bool = Field(
        False, description="Force refresh without using cache"
    )


class UpdateMemoryAbstractInput(BaseModel):
    """Input for overwriting the memory abstract."""

    model_config = ConfigDict(extra="forbid")

    abstract: str = Field(..., description="Updated memory abstract to save")
    last_processed_timestamp: Optional[int] = Field(
        None,
        description="Timestamp of the last processed message (defaults to current time)",
    )


class RecentMemoriesInput(BaseModel):
    """Input for reading recent raw messages."""

    model_config = ConfigDict(extra="forbid")

    max_days: Optional[float] = Field(
        None, description="Maximum days to look back (default: 3)", gt=0
    )
    force_refresh: bool = Field(
        False, description="Force refresh without using cache"
    )


class MemorySummaryInput(BaseModel):
    """Arguments of the memory_summary prompt."""

    agent_name: str = Field(..., description="Name of the agent", min_length=1)
    days_back: int = Field(
        7, description="Number of days to look back (default: 7)", ge=0
    )


# ============================================================================
# Descriptions
# ============================================================================

TOOL_DESCRIPTIONS = {
    "save_memory": (
        "Save individual conversation messages to memory storage. Use this when "
        "you want to persist important parts of our current conversation. Call "
        "this for each significant message or exchange that should be remembered "
        "for future conversations. Typically used during or at the end of "
        "conversations to store key information, decisions, or context."
    ),
    "recall_memory_abstract": (
        "Retrieve the current memory abstract that summarizes past conversations "
        "and context. Use this at the beginning of conversations to understand "
        "what has been discussed before, or when you need to check existing "
        "memory context. This gives you the processed summary of previous "
        "interactions, not raw messages. Call this to \"remember\" previous "
        "conversations with this user."
    ),
    "update_memory_abstract": (
        "Save a new or updated memory abstract after processing recent "
        "conversations. Use this when you have reviewed recent messages, combined "
        "them with existing memory context, and created an improved summary. The "
        "typical workflow is: 1) Get current memory abstract, 2) Get recent "
        "memories, 3) Process and combine them, 4) Save the updated abstract "
        "here. This maintains the evolving memory summary over time."
    ),
    "get_recent_memories": (
        "Retrieve recent raw conversation messages from the last few days. Use "
        "this when you need to see actual conversation history rather than the "
        "processed summary. Helpful for creating or updating memory abstracts, or "
        "when you need specific details from recent exchanges. This gives you the "
        "unprocessed message data to work with."
    ),
}

RESOURCE_URIS = ("memory://schema", "memory://stats", "memory://abstract")


def _error(exc: Exception) -> dict[str, Any]:
    return {"error": str(exc)}


class MemoryHandlers:
    """Maps tool, resource and prompt names onto MemoryService calls."""

    def __init__(self, service: MemoryService, recent_days_default: float = 3) -> None:
        self._service = service
        self._recent_days_default = recent_days_default
        self._tools: dict[str, Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]] = {
            "save_memory": self.save_memory,
            "recall_memory_abstract": self.recall_memory_abstract,
            "update_memory_abstract": self.update_memory_abstract,
            "get_recent_memories": self.get_recent_memories,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def call_tool(
        self, name: str, arguments: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Dispatch a tool call by name."""
        handler = self._tools.get(name)
        if handler is None:
            logger.error("Unknown tool", tool=name)
            return {"error": f"Unknown tool: {name}"}
        try:
            return await handler(arguments or {})
        except ValidationError as exc:
            logger.warning("Invalid tool arguments", tool=name, error=str(exc))
            return _error(exc)

    # --- Tools ---

    async def save_memory(self, arguments: dict[str, Any]) -> dict[str, Any]:
        args = SaveMemoryInput.model_validate(arguments)
        result = await self._service.save(
            speaker=args.speaker,
            message=args.message,
            context=args.context,
        )
        return result.model_dump()

    async def recall_memory_abstract(self, arguments: dict[str, Any]) -> dict[str, Any]:
        args = RecallMemoryAbstractInput.model_validate(arguments)
        result = await self._service.recall_abstract(force_refresh=args.force_refresh)
        return result.model_dump()

    async def update_memory_abstract(self, arguments: dict[str, Any]) -> dict[str, Any]:
        args = UpdateMemoryAbstractInput.model_validate(arguments)
        result = await self._service.update_abstract(
            args.abstract, args.last_processed_timestamp
        )
        return result.model_dump()

    async def get_recent_memories(self, arguments: dict[str, Any]) -> dict[str, Any]:
        # force_refresh is accepted for compatibility; the read is always live.
        args = RecentMemoriesInput.model_validate(arguments)
        max_days = args.max_days or self._recent_days_default
        result = await self._service.get_recent(max_days)
        return result.model_dump()

    # --- Resources ---

    async def read_resource(self, uri: str) -> str:
        """Return a resource as pretty-printed JSON text."""
        if uri == "memory://schema":
            payload: Any = await self._service.schema()
        elif uri == "memory://stats":
            payload = (await self._service.stats()).model_dump()
        elif uri == "memory://abstract":
            payload = (await self._service.latest_abstract()).model_dump()
        else:
            payload = {"error": f"Unknown resource: {uri}"}
        return json.dumps(payload, indent=2, default=str)

    # --- Prompts ---

    async def memory_summary(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Build the memory_summary prompt as a description plus one user message."""
        try:
            args = MemorySummaryInput.model_validate(arguments)
        except ValidationError as exc:
            return _error(exc)

        text = await self._service.summarize_for_agent(args.agent_name, args.days_back)
        return {
            "description": (
                f"Memory summary for agent {args.agent_name} "
                f"over the last {args.days_back} days"
            ),
            "messages": [
                {"role": "user", "content": {"type": "text", "text": text}},
            ],
        }
