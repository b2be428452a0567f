"""Exception hierarchy for the RAG gateway.

Every error carries a human-readable `message` plus optional `details` for
logs. HTTP responses only ever expose `public_message`.
"""

from __future__ import annotations

from typing import Any

GENERIC_ERROR_MESSAGE = "An error occurred while processing your request."


class RagGatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500
    public_message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(RagGatewayError):
    """Raised when request input is missing or malformed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message


class NotFoundError(RagGatewayError):
    """Raised when a requested record does not exist."""

    status_code = 404

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message


class EmbeddingError(RagGatewayError):
    """Raised when the embedding collaborator fails."""


class StorageError(RagGatewayError):
    """Raised when the vector store or durable document store fails."""


class RetrievalError(RagGatewayError):
    """Raised when a scoped similarity query cannot be completed."""


class UpstreamError(RagGatewayError):
    """Raised when the remote completion API fails or returns garbage."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status is not None:
            details["status"] = status
        self.status = status
        self.body = body
        super().__init__(message, details)


class UpstreamTimeoutError(UpstreamError):
    """Raised when the remote completion API does not answer in time."""

    status_code = 504
