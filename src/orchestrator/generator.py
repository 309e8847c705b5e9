"""Response generator: the brief plus recent dialogue in, the reply out."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.llm.prompt import build_reply_prompt, build_system_prompt
from src.safety.crisis import emergency_resources_text

if TYPE_CHECKING:
    from src.llm.client import LLMClient
    from src.orchestrator.models import ChatTurn, ContextBrief

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I'm here with you. I couldn't put together a full answer just now, "
    "but I'd like to hear more about how you're doing."
)


class ResponseGenerator:
    def __init__(
        self,
        llm: LLMClient,
        history_turns: int = 4,
        max_tokens: int = 512,
        temperature: float = 0.7,
        timezone: str = "UTC",
    ) -> None:
        self._llm = llm
        self._history_turns = history_turns
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timezone = timezone

    async def generate(
        self,
        message: str,
        brief: ContextBrief,
        history: list[ChatTurn],
        crisis: bool,
        user_name: str = "Student",
    ) -> str:
        """Produce the reply; on *crisis* the resources block is appended.

        Raises:
            GenerationError: categorised model failure, for the HTTP layer.
        """
        recent = history[-self._history_turns :] if self._history_turns > 0 else []
        text = await self._llm.complete_text(
            [
                {
                    "role": "user",
                    "content": build_reply_prompt(
                        message, brief.narrative, recent, user_name, crisis=crisis
                    ),
                }
            ],
            system=build_system_prompt(crisis=crisis, timezone=self._timezone),
            model=self._llm.models.chat,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        reply = text.strip()
        if not reply:
            logger.warning("Model returned an empty reply, using fallback")
            reply = FALLBACK_REPLY

        if crisis:
            reply = f"{reply}\n\n{emergency_resources_text()}"
        return reply
