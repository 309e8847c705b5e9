"""Fan-out executor: gather every signal for a turn, tolerating failures.

Phase 1 runs memory search, wearable history, recent wellness, the user
profile and the knowledge-base decision concurrently. Each member is
isolated: a failure is logged and becomes an absent signal without
affecting its siblings. Phase 2 runs knowledge-base retrieval (if the
policy asked for it) and then the health analysis (if history exists).

:meth:`SignalFanOut.orchestrate_with_timeout` bounds the whole operation.
On timeout the in-flight work is left to finish on its own, its results
are dropped, and the caller gets an empty bundle.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

from src.orchestrator.models import ChatTurn, SignalBundle, ToolName

if TYPE_CHECKING:
    from src.knowledge.retriever import KnowledgeRetriever
    from src.memory.store import MemoryStore
    from src.orchestrator.analyzer import HealthAnalyzer
    from src.orchestrator.policy import ToolSelectionPolicy
    from src.profiles.store import ProfileStore
    from src.wearable.store import WearableStore
    from src.wearable.wellness import RecentWellnessProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Orchestrations abandoned by a timeout; referenced so they are not
# garbage-collected mid-flight.
_abandoned: set[asyncio.Task] = set()


async def _settle(name: str, awaitable: Awaitable[T]) -> T | None:
    """Await *awaitable*; log and return None on failure."""
    try:
        return await awaitable
    except Exception as exc:
        logger.warning("Signal provider %s failed: %s", name, exc)
        return None


def _discard_late(task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned orchestration finished with %r (discarded)", exc)
    else:
        logger.debug("Abandoned orchestration finished late (discarded)")


class SignalFanOut:
    def __init__(
        self,
        memory: MemoryStore,
        wearables: WearableStore,
        wellness: RecentWellnessProvider,
        profiles: ProfileStore,
        knowledge: KnowledgeRetriever,
        policy: ToolSelectionPolicy,
        analyzer: HealthAnalyzer,
        history_days: int = 7,
        timeout_s: float = 8.0,
    ) -> None:
        self._memory = memory
        self._wearables = wearables
        self._wellness = wellness
        self._profiles = profiles
        self._knowledge = knowledge
        self._policy = policy
        self._analyzer = analyzer
        self.history_days = history_days
        self.timeout_s = timeout_s

    async def _wants_knowledge(self, message: str, history: list[ChatTurn]) -> bool:
        # No LLM decision when the knowledge base is disabled.
        if not self._knowledge.enabled:
            return False
        return await self._policy.should_retrieve_knowledge_base(message, history)

    async def orchestrate(
        self, user_id: str, message: str, history: list[ChatTurn]
    ) -> SignalBundle:
        """Collect every available signal for one turn. Never raises."""
        started = time.monotonic()
        bundle = SignalBundle()

        # -- Phase 1: always-on providers + the knowledge-base decision -------
        memories, wearable_history, wellness, profile, wants_kb = await asyncio.gather(
            _settle(ToolName.MEMORY_SEARCH, self._memory.search(user_id, message)),
            _settle(
                ToolName.WEARABLE_HISTORY,
                self._wearables.get_recent(user_id, self.history_days),
            ),
            _settle(ToolName.RECENT_WELLNESS, self._wellness.fetch(user_id)),
            _settle(ToolName.USER_PROFILE, self._profiles.get_profile(user_id)),
            _settle("policy", self._wants_knowledge(message, history)),
        )
        bundle.record(ToolName.MEMORY_SEARCH, memories)
        bundle.record(ToolName.WEARABLE_HISTORY, wearable_history)
        bundle.record(ToolName.RECENT_WELLNESS, wellness)
        bundle.record(ToolName.USER_PROFILE, profile)

        # -- Phase 2: dependent signals ---------------------------------------
        if wants_kb:
            chunks = await _settle(ToolName.KNOWLEDGE_BASE, self._knowledge.search(message))
            bundle.record(ToolName.KNOWLEDGE_BASE, chunks)

        if bundle.wearable_history:
            memory_context = None
            if bundle.memories:
                memory_context = "\n".join(f"- {m.text}" for m in bundle.memories)
            insight = await _settle(
                ToolName.HEALTH_ANALYSIS,
                self._analyzer.analyze(bundle.wearable_history, memory_context),
            )
            bundle.record(ToolName.HEALTH_ANALYSIS, insight)

        bundle.execution_time_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Orchestration for %s done in %dms, tools=%s",
            user_id[:8],
            bundle.execution_time_ms,
            [str(t) for t in bundle.tools_used],
        )
        return bundle.seal()

    async def orchestrate_with_timeout(
        self,
        user_id: str,
        message: str,
        history: list[ChatTurn],
        timeout_s: float | None = None,
    ) -> SignalBundle:
        """:meth:`orchestrate` bounded by *timeout_s*; empty bundle on timeout."""
        timeout = self.timeout_s if timeout_s is None else timeout_s
        task: asyncio.Task[Any] = asyncio.create_task(
            self.orchestrate(user_id, message, history), name=f"orchestrate-{user_id[:8]}"
        )
        done, _ = await asyncio.wait({task}, timeout=timeout)

        if task in done:
            exc = task.exception()
            if exc is None:
                return task.result()
            logger.error("Orchestration failed", exc_info=(type(exc), exc, exc.__traceback__))
            return SignalBundle.empty(execution_time_ms=int(timeout * 1000))

        logger.warning(
            "Orchestration for %s timed out after %.1fs, using empty context", user_id[:8], timeout
        )
        _abandoned.add(task)
        task.add_done_callback(_discard_late)
        return SignalBundle.empty(execution_time_ms=int(timeout * 1000), timed_out=True)
