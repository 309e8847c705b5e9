"""Knowledge-base retrieval: query embedding (OpenAI) + vector search (Pinecone).

Document ingestion and indexing happen elsewhere. Each indexed vector is
expected to carry ``text``, ``filename`` and optionally ``pageNumber`` in
its metadata.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)


class KnowledgeBaseError(Exception):
    """Embedding or vector search failed."""


@dataclass(frozen=True)
class KnowledgeChunk:
    text: str
    filename: str
    score: float
    page_number: int | None = None


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class KnowledgeRetriever:
    """Semantic search over the indexed knowledge base."""

    def __init__(
        self,
        embedder: Any | None,
        index: Any | None,
        embedding_model: str = "text-embedding-3-small",
        embedding_dimensions: int = 1024,
        top_k: int = 5,
        min_score: float = 0.3,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self.embedding_model = embedding_model
        self.embedding_dimensions = embedding_dimensions
        self.top_k = top_k
        self.min_score = min_score

    @classmethod
    def from_settings(cls, settings: Settings) -> KnowledgeRetriever:
        embedder = index = None
        if not settings.knowledge_base_enabled:
            logger.info("Knowledge base disabled by configuration")
        elif not (
            settings.openai_api_key and settings.pinecone_api_key and settings.pinecone_index_name
        ):
            logger.warning(
                "Knowledge base disabled — set OPENAI_API_KEY, PINECONE_API_KEY "
                "and PINECONE_INDEX_NAME to enable"
            )
        else:
            from openai import AsyncOpenAI
            from pinecone import Pinecone

            embedder = AsyncOpenAI(api_key=settings.openai_api_key)
            index = Pinecone(api_key=settings.pinecone_api_key).Index(settings.pinecone_index_name)
            logger.info("Knowledge base: Pinecone index %s", settings.pinecone_index_name)
        return cls(
            embedder,
            index,
            embedding_model=settings.embedding_model,
            embedding_dimensions=settings.embedding_dimensions,
            top_k=settings.knowledge_top_k,
            min_score=settings.knowledge_min_score,
        )

    @property
    def enabled(self) -> bool:
        return self._embedder is not None and self._index is not None

    async def embed(self, text: str) -> list[float]:
        response = await self._embedder.embeddings.create(
            model=self.embedding_model,
            input=text,
            dimensions=self.embedding_dimensions,
        )
        return list(response.data[0].embedding)

    async def search(self, query: str, top_k: int | None = None) -> list[KnowledgeChunk]:
        """Return chunks scoring above ``min_score``, best first.

        Raises:
            KnowledgeBaseError: if embedding or the vector query fails.
        """
        if not self.enabled:
            return []

        try:
            vector = await self.embed(query)
            # The Pinecone client is synchronous.
            response = await asyncio.to_thread(
                self._index.query,
                vector=vector,
                top_k=top_k or self.top_k,
                include_metadata=True,
            )
        except Exception as exc:
            raise KnowledgeBaseError(f"Knowledge base query failed: {exc}") from exc

        chunks = []
        for match in _field(response, "matches", []) or []:
            score = float(_field(match, "score", 0.0) or 0.0)
            if score <= self.min_score:
                continue
            metadata = _field(match, "metadata", {}) or {}
            page = metadata.get("pageNumber")
            chunks.append(
                KnowledgeChunk(
                    text=str(metadata.get("text", "")),
                    filename=str(metadata.get("filename", "")),
                    score=score,
                    page_number=int(page) if page is not None else None,
                )
            )
        chunks.sort(key=lambda c: c.score, reverse=True)
        logger.info("Knowledge base returned %d chunks for %r", len(chunks), query[:60])
        return chunks
