"""Fire-and-forget memory persistence after a reply is produced.

Writes run as detached tasks so the HTTP response never waits on Mem0.
A failed write is never raised to the caller; it is handed to an error
sink, which by default logs it with structured fields.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from src.memory.models import MemoryCategory, TurnMessage
from src.memory.store import MemoryStore

logger = logging.getLogger(__name__)

ErrorSink = Callable[[BaseException, dict[str, Any]], None]


def log_error_sink(exc: BaseException, context: dict[str, Any]) -> None:
    """Default sink: one ERROR record with the write's context attached."""
    logger.error(
        "Memory write failed [%s] for %s",
        context.get("category"),
        str(context.get("user_id", ""))[:8],
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"memory_write": context},
    )


class MemoryWriter:
    """Schedules memory appends without blocking the turn."""

    def __init__(
        self,
        store: MemoryStore,
        enabled: bool = True,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._error_sink = error_sink or log_error_sink
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def write_async(
        self,
        user_id: str,
        messages: list[TurnMessage],
        category: MemoryCategory,
        metadata: dict[str, Any] | None = None,
    ) -> asyncio.Task | None:
        """Schedule an append and return immediately.

        Returns the task (useful for tests and shutdown), or None when
        writes are disabled.
        """
        if not self._enabled or not self._store.enabled:
            return None

        context = {"user_id": user_id, "category": str(category), **(metadata or {})}
        task = asyncio.create_task(
            self._store.append(user_id, messages, category, metadata),
            name=f"memory-write-{category}",
        )
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finished(t, context))
        return task

    def write_turn(
        self,
        user_id: str,
        user_message: str,
        reply: str,
        crisis: bool,
    ) -> asyncio.Task | None:
        """Persist a user/assistant exchange as conversational memory.

        Crisis-flagged turns are never written.
        """
        if crisis:
            logger.info("Skipping conversation memory for %s (crisis flagged)", user_id[:8])
            return None
        return self.write_async(
            user_id,
            [
                TurnMessage(role="user", content=user_message),
                TurnMessage(role="assistant", content=reply),
            ],
            MemoryCategory.CONVERSATION,
        )

    def write_health_insight(
        self,
        user_id: str,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> asyncio.Task | None:
        """Persist an analyzer result. Not subject to crisis suppression."""
        return self.write_async(
            user_id,
            [TurnMessage(role="assistant", content=text)],
            MemoryCategory.HEALTH_INSIGHT,
            metadata,
        )

    async def drain(self) -> None:
        """Wait for every scheduled write to settle (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _finished(self, task: asyncio.Task, context: dict[str, Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            try:
                self._error_sink(exc, context)
            except Exception:
                logger.exception("Memory error sink raised")
