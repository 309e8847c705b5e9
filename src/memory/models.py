"""Data models for long-term per-user memory."""

from enum import StrEnum

from pydantic import BaseModel


class MemoryCategory(StrEnum):
    PROFILE = "profile"
    HEALTH_INSIGHT = "health-insight"
    CONVERSATION = "conversation"
    CONCERN = "concern"
    GOAL = "goal"


class TurnMessage(BaseModel):
    """One side of a turn pair handed to the memory service."""

    role: str
    content: str


class MemoryRecord(BaseModel):
    """A memory returned by a search."""

    id: str
    text: str
    category: str = MemoryCategory.CONVERSATION.value
    relevance_score: float = 0.0
    created_at: str = ""
