"""Tool-selection policy: should this turn search the knowledge base?

Memories, wearable data and the profile are always fetched. The only
optional capability is knowledge-base retrieval, and the fast model decides
by either calling the single tool it is offered or not.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.llm.client import GenerationError

if TYPE_CHECKING:
    from src.llm.client import LLMClient
    from src.orchestrator.models import ChatTurn

logger = logging.getLogger(__name__)

POLICY_SYSTEM_PROMPT = """\
You are the context orchestrator for a mental health chatbot. Your ONLY job \
is to decide whether the knowledge-base search tool should be called.

User memories and wearable health data are ALWAYS fetched automatically. \
You only decide about the knowledge base.

Call search_knowledge_base ONLY when:
1. The user asks about mental health concepts, conditions or techniques (CBT, anxiety disorders, depression, etc.)
2. The user needs evidence-based coping strategies or therapeutic techniques
3. The user asks educational questions about psychology or mental health
4. The user needs professional guidance on a specific mental health topic

DO NOT call search_knowledge_base for:
1. Personal conversation about their day, feelings or experiences
2. Greetings or casual chat
3. Questions about their own health data or past conversations
4. General emotional support without a need for educational content

Examples:
- "Tell me about CBT" -> call the tool (educational)
- "What are some techniques for exam anxiety?" -> call the tool (coping strategies)
- "I'm feeling sad today" -> no tool (personal; memories and wearable data are auto-fetched)
- "How did I sleep?" -> no tool (health data is auto-fetched)
- "Hi, how are you?" -> no tool"""

KNOWLEDGE_BASE_TOOL = {
    "name": "search_knowledge_base",
    "description": (
        "Search the mental health knowledge base for evidence-based information. "
        "Only call this for educational content about psychology, mental health "
        "conditions, coping strategies or therapeutic techniques."
    ),
    "input_schema": {
        "type": "object",
        "properties": {"query": {"type": "string", "description": "Search query"}},
        "required": ["query"],
    },
}


def build_policy_prompt(message: str, history: list[ChatTurn], turns: int = 2) -> str:
    recent = history[-turns:] if turns > 0 else []
    if not recent:
        return message
    history_text = "\n".join(f"{t.role}: {t.content}" for t in recent)
    return f"Recent conversation:\n{history_text}\n\nCurrent message: {message}"


class ToolSelectionPolicy:
    """One short, low-temperature decision call per turn."""

    def __init__(
        self,
        llm: LLMClient,
        history_turns: int = 2,
        timeout_s: float | None = 5.0,
    ) -> None:
        self._llm = llm
        self._history_turns = history_turns
        self._timeout = timeout_s

    async def should_retrieve_knowledge_base(
        self, message: str, history: list[ChatTurn]
    ) -> bool:
        """True only if the model invoked the tool. Never raises."""
        try:
            decision = await self._llm.decide_tool(
                build_policy_prompt(message, history, self._history_turns),
                KNOWLEDGE_BASE_TOOL,
                system=POLICY_SYSTEM_PROMPT,
                max_tokens=64,
                temperature=0.1,
                timeout=self._timeout,
            )
        except GenerationError as exc:
            logger.warning("Knowledge-base decision failed (%s), skipping retrieval", exc.kind)
            return False
        except Exception:
            logger.exception("Knowledge-base decision failed unexpectedly")
            return False

        if decision.invoked:
            logger.info("Knowledge base requested: %s", decision.arguments.get("query", "")[:80])
        else:
            logger.debug("Knowledge base not needed")
        return decision.invoked
