"""Scoped similarity retrieval over registered documents."""

from __future__ import annotations

import logging
from collections.abc import Collection

from rag_gateway.collaborators import call_collaborator
from rag_gateway.config import RetrievalConfig
from rag_gateway.errors import RetrievalError, ValidationError
from rag_gateway.ingest.embedder import Embedder
from rag_gateway.retrieval.vector_store import VectorStore
from rag_gateway.types import ScoredChunk

logger = logging.getLogger(__name__)


class ScopedRetriever:
    """Finds the best chunks for a query, restricted to an explicit scope.

    An empty scope always yields an empty result without calling the
    embedder; there is no unscoped fallback.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Embedder,
        config: RetrievalConfig | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        self.vector_store = vector_store
        self.embedder = embedder
        self.config = config or RetrievalConfig()
        self._timeout = timeout

    async def retrieve(
        self,
        query: str,
        scope: Collection[str],
        *,
        top_k: int | None = None,
    ) -> list[ScoredChunk]:
        if not query or not query.strip():
            raise ValidationError("Query text is required", field="query")
        if not scope:
            return []

        scope = frozenset(scope)
        query_embedding = await call_collaborator(
            self.embedder.embed_query,
            query,
            timeout=self._timeout,
            error_cls=RetrievalError,
            operation="embed query",
        )
        hits = await call_collaborator(
            self.vector_store.query,
            query_embedding,
            scope,
            top_k or self.config.top_k,
            timeout=self._timeout,
            error_cls=RetrievalError,
            operation="similarity search",
        )

        # Stores are trusted to filter, but out-of-scope hits must never leak.
        scoped = [hit for hit in hits if hit.chunk.doc_id in scope]
        if len(scoped) != len(hits):
            logger.warning("Dropped %d out-of-scope hits", len(hits) - len(scoped))
        logger.debug("Retrieved %d chunks over %d documents", len(scoped), len(scope))
        return scoped
