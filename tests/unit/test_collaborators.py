import asyncio
import time

import pytest

from rag_gateway.collaborators import call_collaborator
from rag_gateway.errors import StorageError, ValidationError


@pytest.mark.asyncio
async def test_result_is_returned_from_worker_thread() -> None:
    result = await call_collaborator(
        sorted, [3, 1, 2], timeout=1.0, error_cls=StorageError, operation="sort"
    )

    assert result == [1, 2, 3]


@pytest.mark.asyncio
async def test_timeout_maps_to_collaborator_error() -> None:
    with pytest.raises(StorageError) as excinfo:
        await call_collaborator(
            time.sleep, 0.3, timeout=0.01, error_cls=StorageError, operation="slow write"
        )

    assert excinfo.value.details == {"operation": "slow write", "timeout": 0.01}
    assert isinstance(excinfo.value.__cause__, asyncio.TimeoutError)


@pytest.mark.asyncio
async def test_unexpected_exception_is_wrapped() -> None:
    def boom() -> None:
        raise OSError("disk full")

    with pytest.raises(StorageError) as excinfo:
        await call_collaborator(boom, timeout=1.0, error_cls=StorageError, operation="write")

    assert excinfo.value.details["operation"] == "write"
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_gateway_errors_pass_through_unchanged() -> None:
    def reject() -> None:
        raise ValidationError("bad input", field="document")

    with pytest.raises(ValidationError):
        await call_collaborator(reject, timeout=1.0, error_cls=StorageError, operation="write")
