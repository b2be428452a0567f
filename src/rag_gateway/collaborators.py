"""Timeout-bounded calls into blocking collaborators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from rag_gateway.errors import RagGatewayError

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def call_collaborator(
    func: Callable[..., T],
    *args: Any,
    timeout: float,
    error_cls: type[RagGatewayError],
    operation: str,
) -> T:
    """Run `func` in a worker thread and map any failure to `error_cls`.

    A timeout or exception from the collaborator is logged with its cause
    and re-raised as `error_cls` carrying `operation` in its details.
    """

    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error("%s timed out after %.1fs", operation, timeout)
        raise error_cls(
            f"{operation} timed out", details={"operation": operation, "timeout": timeout}
        ) from exc
    except RagGatewayError:
        raise
    except Exception as exc:
        logger.exception("%s failed", operation)
        raise error_cls(
            f"{operation} failed", details={"operation": operation, "cause": repr(exc)}
        ) from exc
