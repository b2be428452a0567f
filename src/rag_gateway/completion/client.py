"""HTTP client for the remote chat-completion API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from rag_gateway.errors import UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

_MAX_LOGGED_BODY = 2000


class CompletionClient:
    """POSTs `{model, messages}` with bearer auth and returns the JSON object.

    Non-2xx statuses, transport failures, and bodies that are not a JSON
    object all raise `UpstreamError`; the raw body is logged, never returned.
    """

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def complete(self, model: str, messages: list[dict[str, str]]) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        try:
            response = await self._http.post(
                self._api_url,
                headers=headers,
                json={"model": model, "messages": messages},
            )
        except httpx.TimeoutException as exc:
            logger.error("Completion API timed out for model %s", model)
            raise UpstreamTimeoutError("Completion API timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Completion API request failed: %r", exc)
            raise UpstreamError("Completion API request failed") from exc

        body = response.text
        if response.is_error:
            logger.error(
                "Completion API returned %d: %s", response.status_code, body[:_MAX_LOGGED_BODY]
            )
            raise UpstreamError(
                "Completion API returned an error status",
                status=response.status_code,
                body=body,
            )

        try:
            payload = json.loads(body)
        except ValueError as exc:
            logger.error("Completion API returned non-JSON body: %s", body[:_MAX_LOGGED_BODY])
            raise UpstreamError(
                "Completion API returned an unparsable body",
                status=response.status_code,
                body=body,
            ) from exc

        if not isinstance(payload, dict):
            logger.error("Completion API returned non-object JSON: %s", body[:_MAX_LOGGED_BODY])
            raise UpstreamError(
                "Completion API returned an unexpected payload",
                status=response.status_code,
                body=body,
            )
        return payload

    async def aclose(self) -> None:
        await self._http.aclose()
