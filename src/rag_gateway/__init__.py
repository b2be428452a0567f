"""RAG gateway package."""

from .config import ChunkingConfig, RetrievalConfig, ServiceSettings

__all__ = ["ChunkingConfig", "RetrievalConfig", "ServiceSettings"]
