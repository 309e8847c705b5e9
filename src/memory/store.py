"""Per-user memory service backed by Mem0.

Supports two modes controlled by environment variables:
- Hosted: Set MEM0_API_KEY. Uses Mem0's cloud platform.
- Disabled: No MEM0_API_KEY. Search returns no results and appends are
  no-ops. Chat still works, just without long-term memory.

Unlike a best-effort cache, failures here propagate: the fan-out decides
whether a failed search degrades the turn, and the memory writer routes
failed appends to its error sink.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.memory.models import MemoryCategory, MemoryRecord, TurnMessage

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)


class MemoryStore:
    """Search and append memories scoped by user id."""

    def __init__(
        self,
        client: Any | None,
        search_limit: int = 5,
        search_threshold: float = 0.3,
    ) -> None:
        self._client = client
        self.search_limit = search_limit
        self.search_threshold = search_threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> MemoryStore:
        client = None
        if settings.mem0_api_key:
            from mem0 import AsyncMemoryClient

            client = AsyncMemoryClient(api_key=settings.mem0_api_key)
            logger.info("Memory store: hosted mode (Mem0 cloud)")
        else:
            logger.warning(
                "Memory store disabled — set MEM0_API_KEY to enable. "
                "Get a free key at https://app.mem0.ai"
            )
        return cls(
            client,
            search_limit=settings.memory_search_limit,
            search_threshold=settings.memory_search_threshold,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    # -- Write ---------------------------------------------------------------

    async def append(
        self,
        user_id: str,
        messages: list[TurnMessage],
        category: MemoryCategory | str,
        metadata: dict[str, Any] | None = None,
    ) -> list[str] | None:
        """Store a turn pair (or a single synthetic message) for *user_id*.

        Returns:
            The ids Mem0 reported for the new memories, or None if disabled.
        """
        if not self.enabled:
            return None

        full_metadata = {
            "category": str(category),
            "created_at": datetime.now(UTC).isoformat(),
            **(metadata or {}),
        }
        result = await self._client.add(
            [m.model_dump() for m in messages],
            user_id=user_id,
            metadata=full_metadata,
        )
        ids = self._ids(result)
        logger.debug("Stored %d memories [%s] for %s", len(ids), category, user_id[:8])
        return ids

    # -- Read ----------------------------------------------------------------

    async def search(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
        categories: list[MemoryCategory] | None = None,
    ) -> list[MemoryRecord]:
        """Search *user_id*'s memories for *query*, most relevant first.

        Only the first category is sent as a filter; Mem0 filters on a
        single metadata value.
        """
        if not self.enabled:
            return []

        limit = limit or self.search_limit
        threshold = self.search_threshold if threshold is None else threshold
        kwargs: dict[str, Any] = {"user_id": user_id, "limit": limit, "threshold": threshold}
        if categories:
            kwargs["filters"] = {"category": str(categories[0])}

        raw = await self._client.search(query, **kwargs)
        records = [r for r in self._normalize(raw) if r.relevance_score >= threshold]
        records.sort(key=lambda r: r.relevance_score, reverse=True)
        return records[:limit]

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _items(raw: Any) -> list[dict]:
        if isinstance(raw, dict):
            items = raw.get("results", [])
        elif isinstance(raw, list):
            items = raw
        else:
            items = []
        return [item for item in items if isinstance(item, dict)]

    @classmethod
    def _ids(cls, raw: Any) -> list[str]:
        if isinstance(raw, dict) and ("id" in raw or "memory_id" in raw):
            return [raw.get("id") or raw.get("memory_id")]
        ids = [item.get("id") or item.get("memory_id") for item in cls._items(raw)]
        return [i for i in ids if i]

    @classmethod
    def _normalize(cls, raw: Any) -> list[MemoryRecord]:
        """Normalize Mem0 search results into MemoryRecord list."""
        records = []
        for item in cls._items(raw):
            meta = item.get("metadata") or {}
            text = item.get("memory") or item.get("text") or item.get("content") or ""
            if not text:
                continue
            records.append(
                MemoryRecord(
                    id=str(item.get("id", "")),
                    text=text,
                    category=meta.get("category") or MemoryCategory.CONVERSATION.value,
                    relevance_score=float(item.get("score") or 0.0),
                    created_at=meta.get("created_at") or item.get("created_at") or "",
                )
            )
        return records
