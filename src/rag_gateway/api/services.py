"""Wiring of collaborators and core components for one application."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from rag_gateway.completion.client import CompletionClient
from rag_gateway.completion.proxy import CompletionProxy
from rag_gateway.config import ChunkingConfig, RetrievalConfig, ServiceSettings
from rag_gateway.ingest.chunker import SemanticSlidingChunker
from rag_gateway.ingest.embedder import Embedder, HashingEmbedder, LangChainEmbedder
from rag_gateway.ingest.pipeline import DocumentIngestor
from rag_gateway.knowledge.eraser import KnowledgeBaseEraser
from rag_gateway.knowledge.registry import KnowledgeBaseRegistry
from rag_gateway.obs.tracing import TraceStore
from rag_gateway.retrieval.retriever import ScopedRetriever
from rag_gateway.retrieval.vector_store import (
    FaissVectorStoreAdapter,
    InMemoryVectorStore,
    VectorStore,
)
from rag_gateway.storage.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    S3DocumentStore,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    settings: ServiceSettings
    registry: KnowledgeBaseRegistry
    embedder: Embedder
    vector_store: VectorStore
    document_store: DocumentStore
    ingestor: DocumentIngestor
    retriever: ScopedRetriever
    eraser: KnowledgeBaseEraser
    completion_client: CompletionClient
    proxy: CompletionProxy
    trace_store: TraceStore


def _create_embedder(settings: ServiceSettings) -> Embedder:
    if not settings.embedding_api_key:
        return HashingEmbedder()

    from langchain_openai import OpenAIEmbeddings

    return LangChainEmbedder(
        OpenAIEmbeddings(model=settings.embedding_model, api_key=settings.embedding_api_key)
    )


def _create_vector_store(settings: ServiceSettings, embedder: Embedder) -> VectorStore:
    if settings.vector_store_backend == "faiss":
        return FaissVectorStoreAdapter(embedder)
    return InMemoryVectorStore()


def _create_document_store(settings: ServiceSettings) -> DocumentStore:
    if settings.document_store_backend == "s3":
        return S3DocumentStore(
            settings.s3_bucket, region=settings.s3_region, prefix=settings.s3_prefix
        )
    return InMemoryDocumentStore()


def build_services(
    settings: ServiceSettings,
    *,
    embedder: Embedder | None = None,
    vector_store: VectorStore | None = None,
    document_store: DocumentStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    chunking: ChunkingConfig | None = None,
    retrieval: RetrievalConfig | None = None,
) -> Services:
    """Build one independent set of components.

    Any collaborator passed explicitly replaces the one chosen from settings.
    """

    embedder = embedder or _create_embedder(settings)
    vector_store = vector_store or _create_vector_store(settings, embedder)
    document_store = document_store or _create_document_store(settings)
    timeout = settings.collaborator_timeout_seconds

    registry = KnowledgeBaseRegistry()
    trace_store = TraceStore()
    retriever = ScopedRetriever(vector_store, embedder, retrieval, timeout=timeout)
    completion_client = CompletionClient(
        api_url=settings.completion_api_url,
        api_key=settings.lambda_api_key,
        timeout=settings.completion_timeout_seconds,
        http_client=http_client,
    )
    if not settings.lambda_api_key:
        logger.warning("LAMBDA_API_KEY is not set; completion calls will be rejected upstream")

    logger.info(
        "Services ready: embedder=%s vector_store=%s document_store=%s",
        embedder.name,
        vector_store.name,
        document_store.name,
    )
    return Services(
        settings=settings,
        registry=registry,
        embedder=embedder,
        vector_store=vector_store,
        document_store=document_store,
        ingestor=DocumentIngestor(
            SemanticSlidingChunker(chunking),
            embedder,
            vector_store,
            document_store,
            registry,
            timeout=timeout,
        ),
        retriever=retriever,
        eraser=KnowledgeBaseEraser(vector_store, document_store, registry, timeout=timeout),
        completion_client=completion_client,
        proxy=CompletionProxy(
            client=completion_client,
            retriever=retriever,
            registry=registry,
            trace_store=trace_store,
            default_model=settings.default_model,
        ),
        trace_store=trace_store,
    )
