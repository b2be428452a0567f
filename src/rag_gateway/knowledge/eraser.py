"""Knowledge-base clear: drop every vector and document, then empty the registry."""

from __future__ import annotations

import asyncio
import logging

from rag_gateway.collaborators import call_collaborator
from rag_gateway.errors import StorageError
from rag_gateway.knowledge.registry import KnowledgeBaseRegistry
from rag_gateway.retrieval.vector_store import VectorStore
from rag_gateway.storage.document_store import DocumentStore
from rag_gateway.types import ClearReport

logger = logging.getLogger(__name__)


class KnowledgeBaseEraser:
    """Clears the knowledge base.

    The bulk vector delete and the registry reset happen together inside
    the registry's exclusive section. If the vector delete fails nothing
    else is touched, unless it timed out: the worker thread cannot be
    cancelled and may still empty the store, so the registry is reset too
    and no registered id is left without vectors. Document blobs are then
    deleted one by one; every id is attempted, and any failures are raised
    together as one `StorageError` after the registry is already empty.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        document_store: DocumentStore,
        registry: KnowledgeBaseRegistry,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._vector_store = vector_store
        self._document_store = document_store
        self._registry = registry
        self._timeout = timeout

    async def clear(self) -> ClearReport:
        async with self._registry.exclusive() as txn:
            try:
                await call_collaborator(
                    self._vector_store.delete_all,
                    timeout=self._timeout,
                    error_cls=StorageError,
                    operation="delete all embeddings",
                )
            except StorageError as exc:
                if isinstance(exc.__cause__, asyncio.TimeoutError):
                    dropped = txn.clear()
                    logger.error(
                        "Vector bulk delete timed out; unregistered %d documents: %s",
                        len(dropped),
                        dropped,
                    )
                raise
            document_ids = txn.clear()

        failed: list[str] = []
        for document_id in document_ids:
            try:
                await call_collaborator(
                    self._document_store.delete,
                    document_id,
                    timeout=self._timeout,
                    error_cls=StorageError,
                    operation="delete document",
                )
            except StorageError:
                failed.append(document_id)

        cleared = [document_id for document_id in document_ids if document_id not in failed]
        if failed:
            logger.error(
                "Knowledge base cleared with %d undeleted documents: %s", len(failed), failed
            )
            raise StorageError(
                "Failed to delete some documents",
                details={"failed_ids": failed, "cleared_ids": cleared},
            )

        logger.info("Knowledge base cleared: %d documents removed", len(cleared))
        return ClearReport(cleared_ids=cleared)
