"""Memory data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class MemoryRecord:
    """A single stored utterance."""

    speaker: str
    message: str  # normalized text
    timestamp: int  # epoch seconds
    sequence: int = 0
    id: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "MemoryRecord":
        """Create from database row."""
        data = dict(row)
        return cls(
            id=data.get("id"),
            speaker=data["speaker"],
            message=data["message"],
            timestamp=int(data["timestamp"]),
            sequence=int(data.get("sequence") or 0),
            created_at=data.get("created_at"),
        )


@dataclass(frozen=True)
class AbstractRecord:
    """The running summary and the watermark it covers."""

    abstract_content: str
    last_processed_timestamp: int
    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "AbstractRecord":
        """Create from database row."""
        data = dict(row)
        return cls(
            id=data.get("id"),
            abstract_content=data.get("abstract_content") or "",
            last_processed_timestamp=int(data.get("last_processed_timestamp") or 0),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class SaveStatus(str, Enum):
    """Outcome of a save request."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store write."""

    status: SaveStatus
    message: str


# --- Service results (dumped to dicts at the tool boundary) ---


class SaveResult(BaseModel):
    status: SaveStatus
    message: str

    model_config = ConfigDict(use_enum_values=True)


class RecallResult(BaseModel):
    memories: str
    last_updated: Optional[int] = None
    created_at: Optional[str] = None


class UpdateAbstractResult(BaseModel):
    status: SaveStatus
    message: str
    abstract_content: Optional[str] = None
    last_processed_timestamp: Optional[int] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class RawMessage(BaseModel):
    speaker: str
    message: str
    timestamp: str
    sequence: int
    datetime: str


class RecentMemories(BaseModel):
    raw_messages: list[RawMessage] = Field(default_factory=list)
    recent_memories: str


class MemoryStats(BaseModel):
    """Aggregate counts over the store."""

    totalMemories: int = 0
    uniqueSpeakers: int = 0
    abstracts: int = 0
