import io
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from rag_gateway.storage.document_store import InMemoryDocumentStore, S3DocumentStore


def test_in_memory_store_put_get_delete() -> None:
    store = InMemoryDocumentStore()

    store.put("doc-1", b"hello", {"label": "a.txt"})
    assert store.get("doc-1") == b"hello"
    assert store.metadata("doc-1") == {"label": "a.txt"}

    store.delete("doc-1")
    store.delete("doc-1")
    assert store.get("doc-1") is None
    assert len(store) == 0


def test_s3_store_uses_prefixed_keys() -> None:
    s3 = MagicMock()
    s3.get_object.return_value = {"Body": io.BytesIO(b"body")}
    store = S3DocumentStore("bucket", prefix="kb/", client=s3)

    store.put("doc-1", b"body", {"label": "a.txt"})
    assert store.get("doc-1") == b"body"
    store.delete("doc-1")

    put_kwargs = s3.put_object.call_args.kwargs
    assert put_kwargs["Bucket"] == "bucket"
    assert put_kwargs["Key"] == "kb/doc-1"
    assert put_kwargs["Metadata"] == {"label": "a.txt"}
    s3.delete_object.assert_called_once_with(Bucket="bucket", Key="kb/doc-1")


def test_s3_store_missing_key_returns_none() -> None:
    s3 = MagicMock()
    s3.get_object.side_effect = ClientError(
        {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
    )
    store = S3DocumentStore("bucket", client=s3)

    assert store.get("doc-404") is None
