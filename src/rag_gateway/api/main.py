"""FastAPI entrypoint for ingest/clear/chat/ragchat endpoints."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from rag_gateway.api.services import Services, build_services
from rag_gateway.completion.proxy import ChatMessage, build_context_items
from rag_gateway.config import ServiceSettings, get_settings
from rag_gateway.errors import GENERIC_ERROR_MESSAGE, NotFoundError, RagGatewayError
from rag_gateway.logging_config import configure_logging

logger = logging.getLogger(__name__)


class ChunkRequest(BaseModel):
    document: str | None = None
    fileName: str | None = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    model: str | None = None


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=50)


def get_services(request: Request) -> Services:
    return request.app.state.services


def create_app(
    services: Services | None = None,
    settings: ServiceSettings | None = None,
) -> FastAPI:
    """Create an application owning its own registry and collaborators."""

    settings = settings or (services.settings if services else get_settings())
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        logger.info("RAG gateway starting")
        yield
        await services.completion_client.aclose()
        logger.info("RAG gateway stopped")

    app = FastAPI(title="RAG Gateway", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(RagGatewayError)
    async def gateway_error_handler(request: Request, exc: RagGatewayError) -> JSONResponse:
        if exc.status_code < 500:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        else:
            logger.error("Failed %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Invalid body for %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Backend is running"

    @app.get("/health")
    async def health(services: Services = Depends(get_services)) -> dict[str, Any]:
        return {
            "status": "ok",
            "documents": services.registry.size(),
            "embedder": services.embedder.name,
            "vector_store": services.vector_store.name,
            "document_store": services.document_store.name,
            "completion_configured": bool(services.settings.lambda_api_key),
        }

    @app.post("/chunk")
    async def chunk(
        request: ChunkRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        document, chunks = await services.ingestor.ingest(request.document, request.fileName)
        return {
            "documentId": document.doc_id,
            "chunks": [
                {"id": chunk.chunk_id, "content": chunk.text, "index": chunk.position}
                for chunk in chunks
            ],
        }

    @app.post("/clear")
    async def clear(services: Services = Depends(get_services)) -> dict[str, Any]:
        report = await services.eraser.clear()
        return {"message": "Knowledge base cleared", "cleared": len(report.cleared_ids)}

    @app.post("/query")
    async def query(
        request: QueryRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        scope = await services.registry.list()
        hits = await services.retriever.retrieve(request.query, scope, top_k=request.top_k)
        return {
            "items": [
                {**item, "document_id": hit.chunk.doc_id, "score": hit.score}
                for item, hit in zip(build_context_items(hits), hits, strict=True)
            ]
        }

    @app.post("/chat")
    async def chat(
        request: ChatRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        result = await services.proxy.complete(request.messages, model=request.model)
        return result.to_payload()

    @app.post("/ragchat")
    async def ragchat(
        request: ChatRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        result = await services.proxy.complete(request.messages, model=request.model, augment=True)
        return result.to_payload()

    @app.get("/traces")
    async def traces(limit: int = 20, services: Services = Depends(get_services)) -> dict[str, Any]:
        return {"items": [asdict(record) for record in services.trace_store.list_recent(limit=limit)]}

    @app.get("/traces/{trace_id}")
    async def trace_detail(
        trace_id: str, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        try:
            record = services.trace_store.get(trace_id)
        except KeyError as exc:
            raise NotFoundError("Trace not found", details={"trace_id": trace_id}) from exc
        return asdict(record)

    @app.get("/metrics")
    async def metrics(services: Services = Depends(get_services)) -> dict[str, Any]:
        return services.trace_store.summary()

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)
