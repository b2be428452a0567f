import httpx
import pytest
from fastapi.testclient import TestClient

from rag_gateway.api.main import create_app
from rag_gateway.api.services import build_services
from rag_gateway.config import ServiceSettings
from rag_gateway.errors import GENERIC_ERROR_MESSAGE
from tests.fakes import FailingEmbedder

UPSTREAM_SECRET = "stack trace: db password=hunter2"


def _client(handler, **overrides) -> TestClient:
    services = build_services(
        ServiceSettings(lambda_api_key="k"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **overrides,
    )
    return TestClient(create_app(services))


def _never_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError("completion API must not be called")


def test_ragchat_without_messages_is_rejected_before_any_call() -> None:
    client = _client(_never_called, embedder=FailingEmbedder())

    resp = client.post("/ragchat", json={"messages": []})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No messages found"}


@pytest.mark.parametrize("path", ["/chat", "/ragchat"])
def test_upstream_500_yields_generic_500(path: str) -> None:
    client = _client(lambda request: httpx.Response(500, text=UPSTREAM_SECRET))

    resp = client.post(path, json={"messages": [{"role": "user", "content": "hi"}]})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}
    assert "hunter2" not in resp.text


@pytest.mark.parametrize("path", ["/chat", "/ragchat"])
def test_unparsable_upstream_body_is_not_an_empty_success(path: str) -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>bad gateway</html>"))

    resp = client.post(path, json={"messages": [{"role": "user", "content": "hi"}]})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


def test_upstream_timeout_yields_504() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = _client(handler)

    resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert resp.status_code == 504
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


@pytest.mark.parametrize(
    "messages",
    [
        [{"role": "wizard", "content": "hi"}],
        [{"role": "user", "content": {"text": "hi"}}],
        [{"role": "user"}],
        "not a list",
    ],
)
def test_malformed_messages_are_rejected(messages) -> None:
    client = _client(_never_called)

    resp = client.post("/chat", json={"messages": messages})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request body"}


def test_embedding_failure_on_ingest_is_generic_500() -> None:
    client = _client(_never_called, embedder=FailingEmbedder())

    resp = client.post("/chunk", json={"document": "some text", "fileName": "a.txt"})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


@pytest.mark.parametrize("path", ["/chat", "/ragchat"])
def test_odd_but_valid_upstream_object_is_relayed(path: str) -> None:
    client = _client(lambda request: httpx.Response(200, json={"id": "x", "choices": 5}))

    resp = client.post(path, json={"messages": [{"role": "user", "content": "hi"}]})

    assert resp.status_code == 200
    assert resp.json()["choices"] == 5
    assert len(client.get("/traces").json()["items"]) == 1


def test_unexpected_exception_yields_generic_json_500() -> None:
    services = build_services(
        ServiceSettings(lambda_api_key="k"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_never_called)),
    )

    def broken_summary() -> dict:
        raise RuntimeError("summary exploded")

    services.trace_store.summary = broken_summary
    client = TestClient(create_app(services), raise_server_exceptions=False)

    resp = client.get("/metrics")

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


def test_unknown_trace_uses_error_shape() -> None:
    client = _client(_never_called)

    resp = client.get("/traces/unknown")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Trace not found"}
