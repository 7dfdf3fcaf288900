"""Integration test: a conversation saved, summarized and recalled end to end."""

import json

import pytest

from openmemory.memory.service import MemoryService
from openmemory.server.handlers import MemoryHandlers

NOW = 1_700_000_000

PLANNING = [
    ("user", "I want to build a web application using React and Node.js"),
    (
        "agent",
        "I suggest using Next.js for the frontend and Express for the backend. "
        "We should also consider using TypeScript.",
    ),
    ("user", "That sounds good. I also want to use MongoDB for the database."),
]

ABSTRACT = (
    "User is planning a web application. Tech stack decisions: Next.js "
    "(frontend), Express (backend), TypeScript, and MongoDB (database). The "
    "project is in initial planning phase."
)


@pytest.fixture
def handlers(store, clock):
    return MemoryHandlers(MemoryService(store, clock=clock))


async def _save_all(handlers, messages):
    for speaker, message in messages:
        result = await handlers.call_tool(
            "save_memory",
            {"speaker": speaker, "message": message, "context": "project_planning"},
        )
        assert result["status"] == "success"


class TestMemoryFlow:
    """Save, summarize, read back and extend a project discussion."""

    async def test_project_planning_conversation(self, handlers, clock) -> None:
        """Caller-written abstracts and automatic merges interleave correctly."""
        await _save_all(handlers, PLANNING)

        update = await handlers.call_tool("update_memory_abstract", {"abstract": ABSTRACT})
        assert update["status"] == "success"
        assert update["last_processed_timestamp"] == NOW

        recent = await handlers.call_tool("get_recent_memories", {"max_days": 1})
        assert [m["sequence"] for m in recent["raw_messages"]] == [0, 1, 2]
        assert recent["raw_messages"][0]["datetime"] == "2023-11-14T22:13:20+00:00"
        assert recent["recent_memories"].splitlines()[0] == (
            "[2023-11-14 22:13:20] User: "
            "I want to build a web application using React and Node.js"
        )

        # Everything up to NOW is already covered by the abstract.
        recall = await handlers.call_tool("recall_memory_abstract", {})
        assert recall["memories"] == ABSTRACT
        assert recall["last_updated"] == NOW
        assert recall["created_at"] is not None

        clock.advance(60)
        await _save_all(
            handlers,
            [
                ("user", "I also want to implement user authentication with JWT tokens"),
                (
                    "agent",
                    "Good choice. We can use Passport.js with JWT strategy for "
                    "authentication.",
                ),
            ],
        )

        recall = await handlers.call_tool("recall_memory_abstract", {})
        assert recall["last_updated"] == NOW + 60
        assert recall["memories"].startswith(f"Previous Summary:\n{ABSTRACT}\n\n")
        assert (
            "[2023-11-14 22:14:20_0] User: I also want to implement user "
            "authentication with JWT tokens"
        ) in recall["memories"]
        assert "[2023-11-14 22:14:20_1] Agent: Good choice." in recall["memories"]

        # A second recall with nothing new is stable.
        again = await handlers.call_tool("recall_memory_abstract", {})
        assert again["memories"] == recall["memories"]
        assert again["last_updated"] == NOW + 60

        stats = json.loads(await handlers.read_resource("memory://stats"))
        assert stats == {"totalMemories": 5, "uniqueSpeakers": 2, "abstracts": 1}

    async def test_force_refresh_rebuilds_from_history(self, handlers) -> None:
        """force_refresh ignores the stored abstract and summarizes the tail."""
        await _save_all(handlers, PLANNING)
        await handlers.call_tool(
            "update_memory_abstract", {"abstract": "stale", "last_processed_timestamp": 0}
        )

        recall = await handlers.call_tool("recall_memory_abstract", {"force_refresh": True})

        assert recall["memories"].startswith("Conversation Summary (3 total messages):")
        assert recall["last_updated"] == NOW
        stored = json.loads(await handlers.read_resource("memory://abstract"))
        assert stored["memories"] == recall["memories"]

    async def test_markup_is_stripped_before_storage(self, handlers) -> None:
        """Tags and runs of whitespace never reach the store."""
        await handlers.call_tool(
            "save_memory",
            {"speaker": "user", "message": "<b>Remember</b>   the\n\nmilk <br/>"},
        )

        recent = await handlers.call_tool("get_recent_memories", {})
        assert recent["raw_messages"][0]["message"] == "Remember the milk"
