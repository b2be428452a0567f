"""Configuration models for the RAG gateway."""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingConfig(BaseModel):
    """Configures semantic + sliding-window chunking behavior."""

    max_tokens: int = Field(default=400, ge=20)
    overlap_tokens: int = Field(default=40, ge=0)
    semantic_break_threshold: float = Field(default=0.25, ge=0.0, le=1.0)


class RetrievalConfig(BaseModel):
    """Configures scoped similarity retrieval."""

    top_k: int = Field(default=5, ge=1, le=50)


class ServiceSettings(BaseSettings):
    """Environment-provided settings for collaborators and the HTTP server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    lambda_api_key: str = Field(default="", description="Bearer token for the completion API")
    completion_api_url: str = "https://api.lambdalabs.com/v1/chat/completions"
    default_model: str = "hermes3-405b"

    embedding_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"

    vector_store_backend: str = Field(default="memory", pattern="^(memory|faiss)$")
    document_store_backend: str = Field(default="memory", pattern="^(memory|s3)$")
    s3_bucket: str = "rag-gateway-documents"
    s3_region: str = "us-east-1"
    s3_prefix: str = "documents/"

    collaborator_timeout_seconds: float = Field(default=30.0, gt=0.0)
    completion_timeout_seconds: float = Field(default=60.0, gt=0.0)

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"


@lru_cache
def get_settings() -> ServiceSettings:
    """Load settings once per process."""
    return ServiceSettings()
