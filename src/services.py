"""Dependency container: every client and store, built once at startup.

Components receive their collaborators explicitly instead of reaching for
module-level singletons. Tests build a container from fakes with
:func:`build_services` keyword overrides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from src.auth.sessions import SessionStore
from src.knowledge.retriever import KnowledgeRetriever
from src.llm.client import LLMClient
from src.memory.store import MemoryStore
from src.memory.writer import MemoryWriter
from src.notifications.email_channel import EmailAlertChannel
from src.orchestrator.analyzer import HealthAnalyzer
from src.orchestrator.fanout import SignalFanOut
from src.orchestrator.generator import ResponseGenerator
from src.orchestrator.pipeline import ChatPipeline
from src.orchestrator.policy import ToolSelectionPolicy
from src.orchestrator.summarizer import ContextSummarizer
from src.profiles.store import ProfileStore
from src.transcripts.store import TranscriptStore
from src.wearable.intraday import FitbitClient
from src.wearable.store import WearableStore
from src.wearable.wellness import RecentWellnessProvider

if TYPE_CHECKING:
    from src.config import Settings
    from src.notifications.channels import AlertChannel

logger = logging.getLogger(__name__)


@dataclass
class Services:
    llm: LLMClient
    memory: MemoryStore
    memory_writer: MemoryWriter
    wearables: WearableStore
    fitbit: FitbitClient
    profiles: ProfileStore
    transcripts: TranscriptStore
    sessions: SessionStore
    knowledge: KnowledgeRetriever
    alerts: AlertChannel
    pipeline: ChatPipeline

    async def close(self) -> None:
        """Flush pending memory writes and release network sessions."""
        await self.memory_writer.drain()
        await self.fitbit.close()


def build_services(settings: Settings, **overrides: Any) -> Services:
    """Wire every component from *settings*.

    Keyword overrides replace a collaborator before anything that depends
    on it is built (e.g. ``llm=LLMClient(mock_sdk)``).
    """
    llm = overrides.get("llm") or LLMClient.from_settings(settings)
    memory = overrides.get("memory") or MemoryStore.from_settings(settings)
    wearables = overrides.get("wearables") or WearableStore()
    profiles = overrides.get("profiles") or ProfileStore()
    transcripts = overrides.get("transcripts") or TranscriptStore()
    sessions = overrides.get("sessions") or SessionStore(ttl_hours=settings.session_ttl_hours)
    knowledge = overrides.get("knowledge") or KnowledgeRetriever.from_settings(settings)
    alerts = overrides.get("alerts") or EmailAlertChannel.from_settings(settings)
    fitbit = overrides.get("fitbit") or FitbitClient(
        wearables,
        api_base=settings.fitbit_api_base,
        timeout_s=settings.wearable_request_timeout_s,
    )
    wellness = overrides.get("wellness") or RecentWellnessProvider(
        wearables, fitbit, window_minutes=settings.wellness_window_minutes
    )
    memory_writer = overrides.get("memory_writer") or MemoryWriter(
        memory, enabled=settings.memory_writes_enabled
    )

    fanout = SignalFanOut(
        memory=memory,
        wearables=wearables,
        wellness=wellness,
        profiles=profiles,
        knowledge=knowledge,
        policy=ToolSelectionPolicy(
            llm,
            history_turns=settings.history_turns_for_policy,
            timeout_s=settings.policy_timeout_s,
        ),
        analyzer=HealthAnalyzer(llm),
        history_days=settings.wearable_history_days,
        timeout_s=settings.orchestration_timeout_s,
    )
    pipeline = ChatPipeline(
        fanout=fanout,
        summarizer=ContextSummarizer(
            llm,
            passthrough_chars=settings.summary_passthrough_chars,
            max_chars=settings.narrative_max_chars,
        ),
        generator=ResponseGenerator(
            llm,
            history_turns=settings.history_turns_for_reply,
            timezone=settings.alert_timezone,
        ),
        memory_writer=memory_writer,
        profiles=profiles,
        transcripts=transcripts,
        alerts=alerts,
    )
    logger.info(
        "Services ready (llm=%s, memory=%s, knowledge=%s)",
        llm.enabled,
        memory.enabled,
        knowledge.enabled,
    )
    return Services(
        llm=llm,
        memory=memory,
        memory_writer=memory_writer,
        wearables=wearables,
        fitbit=fitbit,
        profiles=profiles,
        transcripts=transcripts,
        sessions=sessions,
        knowledge=knowledge,
        alerts=alerts,
        pipeline=pipeline,
    )
