"""Completion proxy with optional retrieval augmentation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from rag_gateway.completion.client import CompletionClient
from rag_gateway.errors import RagGatewayError, ValidationError
from rag_gateway.knowledge.registry import KnowledgeBaseRegistry
from rag_gateway.obs.tracing import Timer, TraceRecord, TraceStore, estimate_token_count
from rag_gateway.retrieval.retriever import ScopedRetriever
from rag_gateway.types import ScoredChunk

logger = logging.getLogger(__name__)


class Role(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class ChatMessage(BaseModel):
    """One role-tagged message; anything else is rejected at the boundary."""

    model_config = ConfigDict(extra="forbid")

    role: Role
    content: str


def build_context_items(hits: list[ScoredChunk]) -> list[dict[str, str]]:
    """Shape retrieved chunks as `{id, content}` items for the response."""
    return [{"id": hit.chunk.chunk_id, "content": hit.chunk.text} for hit in hits]


@dataclass(slots=True)
class CompletionResult:
    model_response: dict[str, Any]
    retrieved_chunks: list[ScoredChunk] | None
    trace_id: str

    def to_payload(self) -> dict[str, Any]:
        if self.retrieved_chunks is None:
            return self.model_response
        return {**self.model_response, "chunks": build_context_items(self.retrieved_chunks)}


class CompletionProxy:
    """Forwards chat messages to the completion API.

    With `augment=True` the message contents are joined into one query and
    retrieved over the current registry. The retrieved chunks come back next
    to the model response; the messages sent upstream are left untouched.
    """

    def __init__(
        self,
        *,
        client: CompletionClient,
        retriever: ScopedRetriever,
        registry: KnowledgeBaseRegistry,
        trace_store: TraceStore,
        default_model: str,
    ) -> None:
        self._client = client
        self._retriever = retriever
        self._registry = registry
        self._trace_store = trace_store
        self._default_model = default_model

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        model: str | None = None,
        augment: bool = False,
    ) -> CompletionResult:
        if not messages:
            raise ValidationError("No messages found", field="messages")

        model_name = model or self._default_model
        outgoing = [message.model_dump(mode="json") for message in messages]
        prompt_text = "\n".join(message.content for message in messages)
        endpoint = "ragchat" if augment else "chat"
        hits: list[ScoredChunk] | None = None

        timer = Timer()
        try:
            with timer:
                if augment:
                    hits = await self._retrieve_context(prompt_text)
                response = await self._client.complete(model_name, outgoing)
        except RagGatewayError as exc:
            self._record(
                endpoint, model_name, messages, prompt_text, hits, None, timer, type(exc).__name__
            )
            raise

        record = self._record(
            endpoint, model_name, messages, prompt_text, hits, response, timer, "ok"
        )
        return CompletionResult(model_response=response, retrieved_chunks=hits, trace_id=record.trace_id)

    def _record(
        self,
        endpoint: str,
        model_name: str,
        messages: list[ChatMessage],
        prompt_text: str,
        hits: list[ScoredChunk] | None,
        response: dict[str, Any] | None,
        timer: Timer,
        outcome: str,
    ) -> TraceRecord:
        record = self._trace_store.create_record(
            endpoint=endpoint,
            model=model_name,
            augmented=endpoint == "ragchat",
            message_count=len(messages),
            chunk_ids=[hit.chunk.chunk_id for hit in hits or []],
            input_tokens=estimate_token_count(prompt_text),
            output_tokens=_response_tokens(response),
            latency_ms=timer.elapsed_ms,
            outcome=outcome,
        )
        logger.info(
            "Completion %s model=%s endpoint=%s outcome=%s latency=%.1fms",
            record.trace_id,
            model_name,
            endpoint,
            outcome,
            record.latency_ms,
        )
        return record

    async def _retrieve_context(self, prompt_text: str) -> list[ScoredChunk]:
        if not prompt_text.strip():
            return []
        scope = await self._registry.list()
        return await self._retriever.retrieve(prompt_text, scope)


def _response_tokens(response: dict[str, Any] | None) -> int:
    if not response:
        return 0
    choices = response.get("choices")
    if not isinstance(choices, list):
        return 0
    total = 0
    for choice in choices:
        message = choice.get("message") if isinstance(choice, dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            total += estimate_token_count(message["content"])
    return total
