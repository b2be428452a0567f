"""Durable document stores keyed by document identity."""

from __future__ import annotations

import threading
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError


class DocumentStore(Protocol):
    """Durable blob store holding the original body of each document."""

    name: str

    def put(self, document_id: str, body: bytes, metadata: dict[str, str] | None = None) -> None:
        """Persist `body` under `document_id`, replacing any previous blob."""

    def get(self, document_id: str) -> bytes | None:
        """Return the stored body, or None when absent."""

    def delete(self, document_id: str) -> None:
        """Remove the blob for `document_id`; absent ids are not an error."""


class InMemoryDocumentStore:
    """Process-local document store used for tests and single-node runs."""

    name = "memory"

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, dict[str, str]]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._blobs)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._blobs

    def put(self, document_id: str, body: bytes, metadata: dict[str, str] | None = None) -> None:
        with self._lock:
            self._blobs[document_id] = (body, dict(metadata or {}))

    def get(self, document_id: str) -> bytes | None:
        with self._lock:
            entry = self._blobs.get(document_id)
        return entry[0] if entry else None

    def metadata(self, document_id: str) -> dict[str, str]:
        with self._lock:
            entry = self._blobs.get(document_id)
        return dict(entry[1]) if entry else {}

    def delete(self, document_id: str) -> None:
        with self._lock:
            self._blobs.pop(document_id, None)


class S3DocumentStore:
    """S3-backed document store.

    Objects live at `{prefix}{document_id}` in a single bucket. The label is
    stored as object metadata so the bucket stays self-describing.
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        prefix: str = "documents/",
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket
        self._prefix = prefix
        if client is None:
            client = boto3.client("s3", region_name=region)
        self._s3_client = client

    def _key(self, document_id: str) -> str:
        return f"{self._prefix}{document_id}"

    def put(self, document_id: str, body: bytes, metadata: dict[str, str] | None = None) -> None:
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=self._key(document_id),
            Body=body,
            ContentType="text/plain; charset=utf-8",
            Metadata=dict(metadata or {}),
        )

    def get(self, document_id: str) -> bytes | None:
        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=self._key(document_id))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                return None
            raise
        return response["Body"].read()

    def delete(self, document_id: str) -> None:
        # S3 delete_object succeeds for missing keys.
        self._s3_client.delete_object(Bucket=self._bucket, Key=self._key(document_id))
