import pytest

from rag_gateway.config import ChunkingConfig
from rag_gateway.ingest.chunker import SemanticSlidingChunker
from rag_gateway.ingest.embedder import HashingEmbedder
from rag_gateway.ingest.pipeline import DocumentIngestor
from rag_gateway.knowledge.eraser import KnowledgeBaseEraser
from rag_gateway.knowledge.registry import KnowledgeBaseRegistry
from rag_gateway.retrieval.retriever import ScopedRetriever
from rag_gateway.retrieval.vector_store import InMemoryVectorStore
from rag_gateway.storage.document_store import InMemoryDocumentStore


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def registry() -> KnowledgeBaseRegistry:
    return KnowledgeBaseRegistry()


@pytest.fixture
def chunker() -> SemanticSlidingChunker:
    return SemanticSlidingChunker(ChunkingConfig(max_tokens=60, overlap_tokens=10))


@pytest.fixture
def ingestor(chunker, embedder, vector_store, document_store, registry) -> DocumentIngestor:
    return DocumentIngestor(chunker, embedder, vector_store, document_store, registry, timeout=5.0)


@pytest.fixture
def retriever(vector_store, embedder) -> ScopedRetriever:
    return ScopedRetriever(vector_store, embedder, timeout=5.0)


@pytest.fixture
def eraser(vector_store, document_store, registry) -> KnowledgeBaseEraser:
    return KnowledgeBaseEraser(vector_store, document_store, registry, timeout=5.0)
