"""Multi-source context orchestration for chat turns."""

from src.orchestrator.fanout import SignalFanOut
from src.orchestrator.models import ChatResult, ChatTurn, ContextBrief, SignalBundle, ToolName
from src.orchestrator.pipeline import ChatPipeline

__all__ = [
    "ChatPipeline",
    "ChatResult",
    "ChatTurn",
    "ContextBrief",
    "SignalBundle",
    "SignalFanOut",
    "ToolName",
]
