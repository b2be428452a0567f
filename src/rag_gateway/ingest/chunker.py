"""Semantic and sliding-window chunking for ingested documents."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from rag_gateway.config import ChunkingConfig
from rag_gateway.types import Document, DocumentChunk

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?。！？])\s+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_CLOSING_PUNCTUATION = {".", ",", ";", ":", "!", "?", ")", "]", "}"}
_OPENING_BRACKETS = {"(", "[", "{"}


@dataclass(slots=True)
class _PendingChunk:
    segments: list[str] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)


class SemanticSlidingChunker:
    """Splits a document into ordered, overlapping chunks.

    Paragraphs are split into sentences, and consecutive sentences sharing
    vocabulary are grouped into segments. Segments are then packed into
    chunks of at most `max_tokens`; when a chunk is closed its last
    `overlap_tokens` tokens seed the next one. A segment longer than
    `max_tokens` is cut with a fixed window of stride
    `max_tokens - overlap_tokens`.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()
        if self.config.overlap_tokens >= self.config.max_tokens:
            raise ValueError("overlap_tokens must be less than max_tokens")

    def chunk_document(self, document: Document) -> list[DocumentChunk]:
        """Return the document's chunks in text order, indexed from zero."""

        chunks: list[DocumentChunk] = []
        pending = _PendingChunk()

        for segment in self._semantic_segments(document.text):
            segment_tokens = self.tokenize(segment)

            if len(segment_tokens) > self.config.max_tokens:
                if pending.tokens:
                    chunks.append(self._make_chunk(document, pending.segments, len(chunks)))
                    pending = _PendingChunk()
                chunks.extend(self._window_segment(document, segment_tokens, len(chunks)))
                continue

            if len(pending.tokens) + len(segment_tokens) <= self.config.max_tokens:
                pending.segments.append(segment)
                pending.tokens.extend(segment_tokens)
                continue

            closed = self._make_chunk(document, pending.segments, len(chunks))
            chunks.append(closed)
            pending = self._seed_from(closed, segment)

        if pending.tokens:
            chunks.append(self._make_chunk(document, pending.segments, len(chunks)))
        return chunks

    def _seed_from(self, closed: DocumentChunk, segment: str) -> _PendingChunk:
        if self.config.overlap_tokens == 0:
            return _PendingChunk(segments=[segment], tokens=self.tokenize(segment))
        tail = self.tokenize(closed.text)[-self.config.overlap_tokens :]
        overlap_text = self.detokenize(tail)
        segments = [overlap_text, segment] if overlap_text else [segment]
        return _PendingChunk(segments=segments, tokens=self.tokenize("\n\n".join(segments)))

    def _semantic_segments(self, text: str) -> list[str]:
        segments: list[str] = []
        for paragraph in _PARAGRAPH_SPLIT.split(text):
            sentences = [s.strip() for s in _SENTENCE_SPLIT.split(paragraph) if s.strip()]
            if not sentences:
                continue

            group = [sentences[0]]
            vocabulary = set(self._normalized(sentences[0]))
            for sentence in sentences[1:]:
                sentence_vocabulary = set(self._normalized(sentence))
                if _jaccard(vocabulary, sentence_vocabulary) < 1.0 - self.config.semantic_break_threshold:
                    segments.append(" ".join(group))
                    group = [sentence]
                    vocabulary = sentence_vocabulary
                else:
                    group.append(sentence)
                    vocabulary |= sentence_vocabulary
            segments.append(" ".join(group))
        return [segment for segment in segments if segment]

    def _window_segment(
        self, document: Document, tokens: list[str], start_index: int
    ) -> list[DocumentChunk]:
        stride = self.config.max_tokens - self.config.overlap_tokens
        windows: list[DocumentChunk] = []
        offset = 0
        while offset < len(tokens):
            window = tokens[offset : offset + self.config.max_tokens]
            index = start_index + len(windows)
            windows.append(
                DocumentChunk(
                    chunk_id=_chunk_id(document.doc_id, index),
                    doc_id=document.doc_id,
                    text=self.detokenize(window),
                    token_count=len(window),
                    metadata={
                        **document.metadata,
                        "label": document.label,
                        "chunk_index": index,
                        "window_start": offset,
                        "window_end": offset + len(window),
                    },
                )
            )
            if len(window) < self.config.max_tokens:
                break
            offset += stride
        return windows

    def _make_chunk(
        self, document: Document, segments: list[str], index: int
    ) -> DocumentChunk:
        text = "\n\n".join(s for s in segments if s.strip()).strip()
        return DocumentChunk(
            chunk_id=_chunk_id(document.doc_id, index),
            doc_id=document.doc_id,
            text=text,
            token_count=len(self.tokenize(text)),
            metadata={**document.metadata, "label": document.label, "chunk_index": index},
        )

    @staticmethod
    def tokenize(text: str) -> list[str]:
        return _TOKEN_PATTERN.findall(text)

    @staticmethod
    def detokenize(tokens: list[str]) -> str:
        """Join tokens back into readable text.

        Word tokens are separated by a space; closing punctuation sticks to
        the previous token and opening brackets stick to the next one.
        """

        if not tokens:
            return ""
        parts = [tokens[0]]
        for previous, token in zip(tokens, tokens[1:]):
            if token in _CLOSING_PUNCTUATION or previous in _OPENING_BRACKETS:
                parts.append(token)
            else:
                parts.append(" " + token)
        return "".join(parts)

    @staticmethod
    def _normalized(text: str) -> list[str]:
        return [token.lower() for token in _TOKEN_PATTERN.findall(text)]


def _chunk_id(doc_id: str, index: int) -> str:
    return f"{doc_id}-chunk-{index:04d}"


def _jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)
