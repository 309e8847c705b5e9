"""Per-turn data structures for the chat orchestration pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.knowledge.retriever import KnowledgeChunk
from src.memory.models import MemoryRecord
from src.profiles.store import UserProfile
from src.wearable.models import WearableRecord, WellnessSnapshot


class ToolName(StrEnum):
    MEMORY_SEARCH = "memory_search"
    WEARABLE_HISTORY = "wearable_history"
    RECENT_WELLNESS = "recent_wellness"
    USER_PROFILE = "user_profile"
    KNOWLEDGE_BASE = "knowledge_base"
    HEALTH_ANALYSIS = "health_analysis"


class Urgency(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


_URGENCY_RANK = {Urgency.LOW: 0, Urgency.MODERATE: 1, Urgency.HIGH: 2}


def max_urgency(a: Urgency, b: Urgency) -> Urgency:
    return a if _URGENCY_RANK[a] >= _URGENCY_RANK[b] else b


@dataclass
class ChatTurn:
    role: str  # "user" or "assistant"
    content: str
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ChatTurn | None:
        """Parse one client-supplied history entry; malformed entries give None."""
        if not isinstance(data, dict):
            return None
        role = data.get("role")
        content = data.get("content")
        if role not in ("user", "assistant") or not isinstance(content, str):
            return None
        return cls(role=role, content=content, timestamp=str(data.get("timestamp") or ""))


@dataclass
class HealthInsight:
    """Fixed-shape output of the wearable health analysis."""

    summary: str
    mental_health_correlation: str
    recommendations: list[str] = field(default_factory=list)
    urgency_level: Urgency = Urgency.LOW
    patterns: list[str] = field(default_factory=list)

    def for_memory(self, date_range: str) -> str:
        return (
            f"[HEALTH ANALYSIS {date_range}] {self.summary} "
            f"Mental Health Impact: {self.mental_health_correlation} "
            f"Urgency: {self.urgency_level.value.upper()}."
        )

    def for_context(self) -> str:
        lines = [
            f"Summary: {self.summary}",
            f"Mental health impact: {self.mental_health_correlation}",
            f"Urgency: {self.urgency_level.value}",
        ]
        if self.patterns:
            lines.append("Patterns: " + "; ".join(self.patterns))
        if self.recommendations:
            lines.append("Recommendations: " + "; ".join(self.recommendations))
        return "\n".join(lines)


class BundleSealedError(RuntimeError):
    """A sealed SignalBundle was written to."""


@dataclass
class SignalBundle:
    """Everything gathered for one turn. Never shared between turns.

    Populated by the fan-out, then sealed before it reaches the summarizer.
    """

    memories: list[MemoryRecord] | None = None
    wearable_history: list[WearableRecord] | None = None
    recent_wellness: WellnessSnapshot | None = None
    profile: UserProfile | None = None
    knowledge: list[KnowledgeChunk] | None = None
    health_insight: HealthInsight | None = None
    tools_used: list[ToolName] = field(default_factory=list)
    execution_time_ms: int = 0
    timed_out: bool = False
    _sealed: bool = field(default=False, repr=False)

    _FIELDS = {
        ToolName.MEMORY_SEARCH: "memories",
        ToolName.WEARABLE_HISTORY: "wearable_history",
        ToolName.RECENT_WELLNESS: "recent_wellness",
        ToolName.USER_PROFILE: "profile",
        ToolName.KNOWLEDGE_BASE: "knowledge",
        ToolName.HEALTH_ANALYSIS: "health_insight",
    }

    def record(self, tool: ToolName, value: Any) -> bool:
        """Store *value* for *tool*; empty results count as absent.

        Returns True if the tool contributed data.
        """
        if self._sealed:
            raise BundleSealedError(f"cannot record {tool} on a sealed bundle")
        if value is None or (isinstance(value, list) and not value):
            return False
        setattr(self, self._FIELDS[tool], value)
        self.tools_used.append(tool)
        return True

    def seal(self) -> SignalBundle:
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def is_empty(self) -> bool:
        return not self.tools_used

    @classmethod
    def empty(cls, execution_time_ms: int = 0, timed_out: bool = False) -> SignalBundle:
        return cls(execution_time_ms=execution_time_ms, timed_out=timed_out).seal()


@dataclass(frozen=True)
class ContextBrief:
    narrative: str
    key_points: tuple[str, ...] = ()
    summarization_time_ms: int = 0


@dataclass
class ChatResult:
    """Everything the HTTP layer reports for one turn."""

    response: str
    crisis_detected: bool = False
    severe_crisis: bool = False
    chat_disabled: bool = False
    email_sent: bool | None = None
    sources: list[KnowledgeChunk] = field(default_factory=list)
    fitbit_data_used: bool = False
    tools_used: list[ToolName] = field(default_factory=list)
    orchestration_time_ms: int = 0

    @property
    def context_used(self) -> bool:
        return bool(self.sources)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": True,
            "response": self.response,
            "sources": [
                {"filename": c.filename, "score": c.score, "pageNumber": c.page_number}
                for c in self.sources
            ],
            "contextUsed": self.context_used,
            "fitbitDataUsed": self.fitbit_data_used,
            "crisisDetected": self.crisis_detected,
            "toolsUsed": [str(t) for t in self.tools_used],
            "orchestrationTimeMs": self.orchestration_time_ms,
        }
        if self.severe_crisis:
            payload["severeCrisis"] = True
            payload["chatDisabled"] = self.chat_disabled
            payload["emailSent"] = bool(self.email_sent)
        return payload
