"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class Document:
    """A raw document accepted for ingestion."""

    doc_id: str
    text: str
    label: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DocumentChunk:
    """A chunked section of a source document."""

    chunk_id: str
    doc_id: str
    text: str
    token_count: int
    metadata: dict[str, Any]

    @property
    def position(self) -> int:
        return int(self.metadata.get("chunk_index", 0))


@dataclass(slots=True)
class ScoredChunk:
    """A retrieval result with its relevance score."""

    chunk: DocumentChunk
    score: float
    rank: int = 0


@dataclass(slots=True)
class ClearReport:
    """Outcome of a knowledge-base clear."""

    cleared_ids: list[str]
