"""Per-turn chat pipeline: safety gate, signals, brief, reply, persistence.

Ordering per turn:

1. Safety gate. A severe verdict short-circuits everything below.
2. Signal fan-out (bounded by the orchestration timeout).
3. Context summary.
4. Reply generation. Only this step's failure reaches the caller.
5. Transcript write (awaited, failure-tolerant) and memory writes
   (detached).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.notifications.channels import EmergencyAlert
from src.orchestrator.models import ChatResult, ChatTurn
from src.safety.crisis import classify, severe_emergency_text
from src.wearable.models import date_range

if TYPE_CHECKING:
    from src.auth.sessions import AuthenticatedUser
    from src.memory.writer import MemoryWriter
    from src.notifications.channels import AlertChannel
    from src.orchestrator.fanout import SignalFanOut
    from src.orchestrator.generator import ResponseGenerator
    from src.orchestrator.models import SignalBundle
    from src.orchestrator.summarizer import ContextSummarizer
    from src.profiles.store import ProfileStore, UserProfile
    from src.transcripts.store import TranscriptStore

logger = logging.getLogger(__name__)


class ChatPipeline:
    def __init__(
        self,
        fanout: SignalFanOut,
        summarizer: ContextSummarizer,
        generator: ResponseGenerator,
        memory_writer: MemoryWriter,
        profiles: ProfileStore,
        transcripts: TranscriptStore,
        alerts: AlertChannel,
    ) -> None:
        self._fanout = fanout
        self._summarizer = summarizer
        self._generator = generator
        self._memory_writer = memory_writer
        self._profiles = profiles
        self._transcripts = transcripts
        self._alerts = alerts

    async def handle(
        self,
        user: AuthenticatedUser,
        message: str,
        history: list[ChatTurn],
    ) -> ChatResult:
        """Run one chat turn.

        Raises:
            GenerationError: the reply model failed; nothing is persisted.
        """
        verdict = classify(message)
        if verdict.is_severe:
            return await self._handle_severe(user, message, verdict.matched)
        if verdict.is_crisis:
            logger.warning("Crisis language from %s (matched %r)", user.id[:8], verdict.matched)

        bundle = await self._fanout.orchestrate_with_timeout(user.id, message, history)
        user_name = self._user_name(user, bundle.profile)

        brief = await self._summarizer.summarize(message, bundle, user_name)
        reply = await self._generator.generate(
            message, brief, history, verdict.is_crisis, user_name=user_name
        )

        await self._save_transcript(user.id, message, reply, severe=False)
        self._write_memories(user.id, message, reply, bundle, verdict.is_crisis)

        return ChatResult(
            response=reply,
            crisis_detected=verdict.is_crisis,
            sources=list(bundle.knowledge or []),
            fitbit_data_used=bool(bundle.wearable_history or bundle.recent_wellness),
            tools_used=list(bundle.tools_used),
            orchestration_time_ms=bundle.execution_time_ms,
        )

    # -- Severe crisis -----------------------------------------------------------

    async def _handle_severe(
        self, user: AuthenticatedUser, message: str, matched: str | None
    ) -> ChatResult:
        logger.warning(
            "SEVERE crisis language from %s (matched %r), chat disabled", user.id[:8], matched
        )
        response = severe_emergency_text()

        email_sent = await self._notify_emergency_contact(user)
        await self._save_transcript(user.id, message, response, severe=True)

        return ChatResult(
            response=response,
            crisis_detected=True,
            severe_crisis=True,
            chat_disabled=True,
            email_sent=email_sent,
        )

    async def _notify_emergency_contact(self, user: AuthenticatedUser) -> bool:
        try:
            profile = await self._profiles.get_profile(user.id)
        except Exception:
            logger.exception("Could not load profile for emergency alert")
            return False

        if profile is None or not profile.emergency_contact_email:
            logger.info("No emergency contact registered for %s", user.id[:8])
            return False

        alert = EmergencyAlert(
            contact_email=profile.emergency_contact_email,
            user_name=profile.display_name,
            user_email=profile.email or user.email,
            timestamp=datetime.now(UTC),
        )
        try:
            return await self._alerts.send_emergency_alert(alert)
        except Exception:
            logger.exception("Emergency alert channel raised")
            return False

    # -- Persistence -------------------------------------------------------------

    async def _save_transcript(self, user_id: str, message: str, reply: str, severe: bool) -> None:
        try:
            await self._transcripts.append_exchange(user_id, message, reply, severe_crisis=severe)
        except Exception:
            logger.exception("Failed to save transcript for %s", user_id[:8])

    def _write_memories(
        self,
        user_id: str,
        message: str,
        reply: str,
        bundle: SignalBundle,
        crisis: bool,
    ) -> None:
        self._memory_writer.write_turn(user_id, message, reply, crisis=crisis)
        if bundle.health_insight is not None:
            span = date_range(bundle.wearable_history or [])
            self._memory_writer.write_health_insight(
                user_id,
                bundle.health_insight.for_memory(span),
                {"urgency": str(bundle.health_insight.urgency_level), "date_range": span},
            )

    @staticmethod
    def _user_name(user: AuthenticatedUser, profile: UserProfile | None) -> str:
        if profile is not None:
            return profile.display_name
        if user.email:
            return user.email.split("@")[0]
        return "Student"
