"""Vector store interfaces and concrete adapters."""

from __future__ import annotations

import threading
from collections.abc import Collection
from dataclasses import dataclass
from itertools import count
from math import sqrt
from typing import Any, Protocol, cast

from rag_gateway.types import DocumentChunk, ScoredChunk


class VectorStore(Protocol):
    """Similarity store contract consumed by ingestion, retrieval and clear."""

    name: str

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        """Insert or replace chunk vectors."""

    def query(
        self, query_embedding: list[float], scope: Collection[str], k: int
    ) -> list[ScoredChunk]:
        """Return the best `k` chunks whose parent document is in `scope`."""

    def delete(self, chunk_ids: list[str]) -> None:
        """Remove the given chunk vectors, ignoring unknown ids."""

    def delete_all(self) -> None:
        """Remove every stored vector."""


@dataclass(slots=True)
class _StoredVector:
    chunk: DocumentChunk
    embedding: list[float]
    sequence: int


class InMemoryVectorStore:
    """Deterministic cosine-similarity store for tests and local use.

    Equal scores are ordered by insertion sequence, so identical queries
    always return identical rankings.
    """

    name = "memory"

    def __init__(self) -> None:
        self._store: dict[str, _StoredVector] = {}
        self._sequence = count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._store)

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must have the same length")
        with self._lock:
            for chunk, embedding in zip(chunks, embeddings, strict=True):
                self._store[chunk.chunk_id] = _StoredVector(
                    chunk=chunk, embedding=embedding, sequence=next(self._sequence)
                )

    def query(
        self, query_embedding: list[float], scope: Collection[str], k: int
    ) -> list[ScoredChunk]:
        if not scope:
            return []
        with self._lock:
            candidates = [rec for rec in self._store.values() if rec.chunk.doc_id in scope]
        ranked = sorted(
            candidates,
            key=lambda rec: (-_cosine_similarity(query_embedding, rec.embedding), rec.sequence),
        )
        return [
            ScoredChunk(
                chunk=rec.chunk,
                score=_cosine_similarity(query_embedding, rec.embedding),
                rank=i + 1,
            )
            for i, rec in enumerate(ranked[:k])
        ]

    def delete(self, chunk_ids: list[str]) -> None:
        with self._lock:
            for chunk_id in chunk_ids:
                self._store.pop(chunk_id, None)

    def delete_all(self) -> None:
        with self._lock:
            self._store.clear()


class FaissVectorStoreAdapter:
    """FAISS adapter via the LangChain community integration.

    Keeps the same contract as `InMemoryVectorStore`; scoping is applied as
    a metadata filter on `doc_id`.
    """

    name = "faiss"

    def __init__(self, embedder: Any) -> None:
        try:
            from langchain_community.vectorstores import FAISS
            from langchain_core.embeddings import Embeddings
        except ImportError as exc:  # pragma: no cover - optional extra
            raise RuntimeError(
                "FAISS dependencies are not available. Install rag-gateway[faiss]."
            ) from exc

        class _EmbeddingAdapter(Embeddings):
            def __init__(self, adapter_embedder: Any) -> None:
                self._embedder = adapter_embedder

            def embed_documents(self, texts: list[str]) -> list[list[float]]:
                return cast(list[list[float]], self._embedder.embed_documents(texts))

            def embed_query(self, text: str) -> list[float]:
                return cast(list[float], self._embedder.embed_query(text))

        self._faiss_cls = FAISS
        self._embeddings = _EmbeddingAdapter(embedder)
        self._index: Any | None = None
        self._lock = threading.Lock()

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must have the same length")
        if not chunks:
            return
        text_embeddings = list(zip([chunk.text for chunk in chunks], embeddings, strict=True))
        metadatas = [
            {**chunk.metadata, "chunk_id": chunk.chunk_id, "doc_id": chunk.doc_id}
            for chunk in chunks
        ]
        ids = [chunk.chunk_id for chunk in chunks]

        with self._lock:
            if self._index is None:
                self._index = self._faiss_cls.from_embeddings(
                    text_embeddings=text_embeddings,
                    embedding=self._embeddings,
                    metadatas=metadatas,
                    ids=ids,
                )
                return
            known = set(self._index.index_to_docstore_id.values())
            replaced = [chunk_id for chunk_id in ids if chunk_id in known]
            if replaced:
                self._index.delete(replaced)
            self._index.add_embeddings(text_embeddings=text_embeddings, metadatas=metadatas, ids=ids)

    def query(
        self, query_embedding: list[float], scope: Collection[str], k: int
    ) -> list[ScoredChunk]:
        if not scope:
            return []
        with self._lock:
            if self._index is None:
                return []
            allowed = frozenset(scope)
            docs_and_distances = self._index.similarity_search_with_score_by_vector(
                embedding=query_embedding,
                k=k,
                filter=lambda metadata: metadata.get("doc_id") in allowed,
                fetch_k=max(k, self._index.index.ntotal),
            )

        results: list[ScoredChunk] = []
        for rank, (doc, distance) in enumerate(docs_and_distances, start=1):
            metadata = dict(doc.metadata)
            chunk = DocumentChunk(
                chunk_id=str(metadata.pop("chunk_id")),
                doc_id=str(metadata.pop("doc_id")),
                text=doc.page_content,
                token_count=max(1, len(doc.page_content.split())),
                metadata=metadata,
            )
            results.append(ScoredChunk(chunk=chunk, score=1.0 / (1.0 + float(distance)), rank=rank))
        return results

    def delete(self, chunk_ids: list[str]) -> None:
        with self._lock:
            if self._index is None:
                return
            known = set(self._index.index_to_docstore_id.values())
            present = [chunk_id for chunk_id in chunk_ids if chunk_id in known]
            if present:
                self._index.delete(present)

    def delete_all(self) -> None:
        with self._lock:
            self._index = None


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
