"""Knowledge-base registry: the set of documents eligible for retrieval."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class RegistryTransaction:
    """Handle for registry mutations made while the exclusive section is held."""

    def __init__(self, ids: dict[str, None]) -> None:
        self._ids = ids

    def add(self, document_id: str) -> bool:
        """Add `document_id`; returns False when it was already registered."""
        if document_id in self._ids:
            return False
        self._ids[document_id] = None
        return True

    def ids(self) -> list[str]:
        return list(self._ids)

    def clear(self) -> list[str]:
        """Empty the registry and return what it held, in insertion order."""
        snapshot = list(self._ids)
        self._ids.clear()
        return snapshot


class KnowledgeBaseRegistry:
    """Insertion-ordered set of document ids guarded by an `asyncio.Lock`.

    Multi-step writes (ingestion commit, clear) go through `exclusive()` so
    they cannot interleave with each other. Reads take a snapshot under the
    same lock.
    """

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[RegistryTransaction]:
        async with self._lock:
            yield RegistryTransaction(self._ids)

    async def register(self, document_id: str) -> bool:
        async with self.exclusive() as txn:
            added = txn.add(document_id)
        if added:
            logger.info("Registered document %s", document_id)
        return added

    async def unregister_all(self) -> list[str]:
        async with self.exclusive() as txn:
            removed = txn.clear()
        logger.info("Unregistered %d documents", len(removed))
        return removed

    async def list(self) -> frozenset[str]:
        async with self._lock:
            return frozenset(self._ids)

    async def contains(self, document_id: str) -> bool:
        async with self._lock:
            return document_id in self._ids

    def size(self) -> int:
        return len(self._ids)
