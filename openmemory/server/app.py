"""FastMCP application exposing the memory tools, resources and prompt."""

from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Optional

import structlog
from fastmcp import FastMCP
from pydantic import Field

from ..config.settings import Settings
from ..memory.factory import create_memory_service
from ..memory.service import MemoryService
from ..storage.database import DatabaseManager
from ..storage.factory import create_memory_store
from .handlers import TOOL_DESCRIPTIONS, MemoryHandlers

logger = structlog.get_logger()

SERVER_NAME = "mcp-openmemory"


class ServerState:
    """Holds the handlers once the lifespan has opened the database."""

    def __init__(self) -> None:
        self.handlers: Optional[MemoryHandlers] = None

    def require_handlers(self) -> MemoryHandlers:
        if self.handlers is None:
            raise RuntimeError("Memory service is not initialized")
        return self.handlers


def create_server(
    settings: Settings, service: Optional[MemoryService] = None
) -> FastMCP:
    """Build the FastMCP app.

    Without ``service`` the database named by ``settings.memory_db_path`` is
    opened on startup and closed on shutdown.
    """
    state = ServerState()
    if service is not None:
        state.handlers = MemoryHandlers(service, settings.recent_days_default)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        if state.handlers is not None:
            yield
            return

        db = DatabaseManager(settings.memory_db_path)
        await db.initialize()
        store = create_memory_store(settings, db)
        state.handlers = MemoryHandlers(
            create_memory_service(settings, store), settings.recent_days_default
        )
        logger.info("Database and memory services initialized successfully")
        try:
            yield
        finally:
            await db.close()
            state.handlers = None

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    @mcp.tool(
        name="save_memory",
        description=TOOL_DESCRIPTIONS["save_memory"],
        annotations={"readOnlyHint": False, "idempotentHint": False},
    )
    async def save_memory(
        speaker: Annotated[str, Field(description="Who spoke: agent, user, or system")],
        message: Annotated[str, Field(description="The message content")],
        context: Annotated[
            Optional[str],
            Field(description="Additional context about the conversation"),
        ] = None,
    ) -> dict[str, Any]:
        arguments: dict[str, Any] = {"speaker": speaker, "message": message}
        if context is not None:
            arguments["context"] = context
        return await state.require_handlers().call_tool("save_memory", arguments)

    @mcp.tool(
        name="recall_memory_abstract",
        description=TOOL_DESCRIPTIONS["recall_memory_abstract"],
        annotations={"readOnlyHint": False, "idempotentHint": True},
    )
    async def recall_memory_abstract(
        force_refresh: Annotated[
            bool, Field(description="Force refresh without using cache")
        ] = False,
    ) -> dict[str, Any]:
        return await state.require_handlers().call_tool(
            "recall_memory_abstract", {"force_refresh": force_refresh}
        )

    @mcp.tool(
        name="update_memory_abstract",
        description=TOOL_DESCRIPTIONS["update_memory_abstract"],
        annotations={"readOnlyHint": False, "destructiveHint": True},
    )
    async def update_memory_abstract(
        abstract: Annotated[str, Field(description="Updated memory abstract to save")],
        last_processed_timestamp: Annotated[
            Optional[int],
            Field(
                description="Timestamp of the last processed message "
                "(defaults to current time)"
            ),
        ] = None,
    ) -> dict[str, Any]:
        return await state.require_handlers().call_tool(
            "update_memory_abstract",
            {"abstract": abstract, "last_processed_timestamp": last_processed_timestamp},
        )

    @mcp.tool(
        name="get_recent_memories",
        description=TOOL_DESCRIPTIONS["get_recent_memories"],
        annotations={"readOnlyHint": True},
    )
    async def get_recent_memories(
        max_days: Annotated[
            Optional[float],
            Field(description="Maximum days to look back (default: 3)"),
        ] = None,
        force_refresh: Annotated[
            bool, Field(description="Force refresh without using cache")
        ] = False,
    ) -> dict[str, Any]:
        return await state.require_handlers().call_tool(
            "get_recent_memories",
            {"max_days": max_days, "force_refresh": force_refresh},
        )

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    @mcp.resource(
        "memory://schema",
        name="Database Schema",
        description="SQLite database schema for memory storage",
        mime_type="application/json",
    )
    async def schema_resource() -> str:
        return await state.require_handlers().read_resource("memory://schema")

    @mcp.resource(
        "memory://stats",
        name="Memory Statistics",
        description="Statistics about stored memories and conversations",
        mime_type="application/json",
    )
    async def stats_resource() -> str:
        return await state.require_handlers().read_resource("memory://stats")

    @mcp.resource(
        "memory://abstract",
        name="Memory Abstract",
        description="The stored memory abstract, read without merging new messages",
        mime_type="application/json",
    )
    async def abstract_resource() -> str:
        return await state.require_handlers().read_resource("memory://abstract")

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    @mcp.prompt(
        name="memory_summary",
        description="Generate a summary of stored memories for an agent",
    )
    async def memory_summary(agent_name: str, days_back: int = 7) -> str:
        result = await state.require_handlers().memory_summary(
            {"agent_name": agent_name, "days_back": days_back}
        )
        if "error" in result:
            raise ValueError(result["error"])
        return result["messages"][0]["content"]["text"]

    return mcp
