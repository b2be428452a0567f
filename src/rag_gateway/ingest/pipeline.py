"""Document ingestion: chunk -> embed -> upsert + persist -> register."""

from __future__ import annotations

import logging
import uuid

from rag_gateway.collaborators import call_collaborator
from rag_gateway.errors import EmbeddingError, StorageError, ValidationError
from rag_gateway.ingest.chunker import SemanticSlidingChunker
from rag_gateway.ingest.embedder import Embedder
from rag_gateway.knowledge.registry import KnowledgeBaseRegistry
from rag_gateway.obs.tracing import Timer
from rag_gateway.retrieval.vector_store import VectorStore
from rag_gateway.storage.document_store import DocumentStore
from rag_gateway.types import Document, DocumentChunk

logger = logging.getLogger(__name__)


class DocumentIngestor:
    """Turns raw text into registered, retrievable chunks.

    Chunking and embedding run first and touch no store. The write phase
    (vector upsert, document put, registration) runs inside the registry's
    exclusive section, so a concurrent clear sees all of it or none of it.
    If the upsert or the document put fails, both writes are undone before
    the error propagates and the document is never registered.

    A timed-out write keeps running in its worker thread and can land after
    the rollback. Such leftovers belong to an unregistered id, so scoped
    retrieval never returns them, and the next clear removes the vectors.
    """

    def __init__(
        self,
        chunker: SemanticSlidingChunker,
        embedder: Embedder,
        vector_store: VectorStore,
        document_store: DocumentStore,
        registry: KnowledgeBaseRegistry,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store
        self._document_store = document_store
        self._registry = registry
        self._timeout = timeout

    async def ingest(
        self, text: str | None, label: str | None
    ) -> tuple[Document, list[DocumentChunk]]:
        """Ingest one document and return it with its chunks."""

        if not text or not text.strip():
            raise ValidationError("Document text is required", field="document")
        if not label or not label.strip():
            raise ValidationError("Document label is required", field="fileName")

        document = Document(doc_id=str(uuid.uuid4()), text=text, label=label.strip())
        chunks = self._chunker.chunk_document(document)
        if not chunks:
            raise ValidationError("Document produced no indexable text", field="document")

        with Timer() as timer:
            embeddings = await call_collaborator(
                self._embedder.embed_documents,
                [chunk.text for chunk in chunks],
                timeout=self._timeout,
                error_cls=EmbeddingError,
                operation="embed chunks",
            )
            if len(embeddings) != len(chunks):
                raise EmbeddingError(
                    "Embedder returned a mismatched number of vectors",
                    details={"expected": len(chunks), "received": len(embeddings)},
                )

            async with self._registry.exclusive() as txn:
                try:
                    await call_collaborator(
                        self._vector_store.upsert,
                        chunks,
                        embeddings,
                        timeout=self._timeout,
                        error_cls=StorageError,
                        operation="upsert chunk vectors",
                    )
                    await call_collaborator(
                        self._document_store.put,
                        document.doc_id,
                        document.text.encode("utf-8"),
                        {"label": document.label},
                        timeout=self._timeout,
                        error_cls=StorageError,
                        operation="persist document",
                    )
                except StorageError:
                    await self._rollback(document, chunks)
                    raise
                txn.add(document.doc_id)

        logger.info(
            "Ingested document %s (%s): %d chunks in %.1fms",
            document.doc_id,
            document.label,
            len(chunks),
            timer.elapsed_ms,
        )
        return document, chunks

    async def _rollback(self, document: Document, chunks: list[DocumentChunk]) -> None:
        chunk_ids = [chunk.chunk_id for chunk in chunks]
        try:
            await call_collaborator(
                self._vector_store.delete,
                chunk_ids,
                timeout=self._timeout,
                error_cls=StorageError,
                operation="discard orphaned vectors",
            )
            # A timed-out put may still have landed.
            await call_collaborator(
                self._document_store.delete,
                document.doc_id,
                timeout=self._timeout,
                error_cls=StorageError,
                operation="discard orphaned document",
            )
        except StorageError:
            logger.error(
                "Rollback incomplete for document %s; orphaned chunks: %s",
                document.doc_id,
                chunk_ids,
            )
        else:
            logger.warning(
                "Rolled back document %s (%d chunks) after failed write",
                document.doc_id,
                len(chunk_ids),
            )
