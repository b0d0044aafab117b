import hashlib
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from app.core.config import settings

DEFAULT_PAGE_SIZE = 1000


class StorageError(Exception):
    """Failure reported by an object store.

    Carries the transport-level facts (HTTP status, API error code) that
    error classification works from, so callers never need to know which
    client library produced the failure.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


@dataclass
class StorageObject:
    """Represents one object returned by a bucket listing."""

    key: str
    last_modified: datetime
    size: int
    etag: str | None = None
    storage_class: str | None = None


class ObjectStore(Protocol):
    def list_buckets(self) -> list[str]:
        """Return the names of all buckets visible to the credentials."""
        ...

    def head_bucket(self, bucket: str) -> None:
        """Probe a bucket; raise StorageError when it is not accessible."""
        ...

    def iter_object_pages(self, bucket: str, prefix: str = "") -> Iterator[list[StorageObject]]:
        """Yield the bucket's objects one listing page at a time."""
        ...


class LocalObjectStore:
    """Directory-per-bucket object store for development."""

    def __init__(self, base_dir: str, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._base_dir = Path(base_dir)
        self._page_size = page_size

    def _resolve_bucket_path(self, bucket: str) -> Path:
        """Resolve bucket directory and validate it stays within base directory."""
        base_resolved = self._base_dir.resolve()
        full_path = (self._base_dir / bucket).resolve()
        if full_path.parent != base_resolved:
            raise ValueError(f"Path traversal attempt detected: {bucket}")
        return full_path

    def list_buckets(self) -> list[str]:
        if not self._base_dir.exists():
            return []
        return sorted(p.name for p in self._base_dir.iterdir() if p.is_dir())

    def head_bucket(self, bucket: str) -> None:
        bucket_path = self._resolve_bucket_path(bucket)
        if not bucket_path.is_dir():
            raise StorageError(
                f"bucket {bucket} does not exist", status_code=404, error_code="NoSuchBucket"
            )
        if not os.access(bucket_path, os.R_OK | os.X_OK):
            raise StorageError(
                f"access to bucket {bucket} denied", status_code=403, error_code="AccessDenied"
            )

    def iter_object_pages(self, bucket: str, prefix: str = "") -> Iterator[list[StorageObject]]:
        self.head_bucket(bucket)
        bucket_path = self._resolve_bucket_path(bucket)

        page: list[StorageObject] = []
        for path in sorted(bucket_path.rglob("*")):
            relative = path.relative_to(bucket_path).as_posix()
            if path.is_dir():
                # Empty directories play the role of explicit folder markers
                if any(path.iterdir()):
                    continue
                key = f"{relative}/"
            else:
                key = relative
            if not key.startswith(prefix):
                continue

            page.append(self._to_storage_object(path, key))
            if len(page) >= self._page_size:
                yield page
                page = []

        if page:
            yield page

    @staticmethod
    def _to_storage_object(path: Path, key: str) -> StorageObject:
        stat = path.stat()
        if path.is_dir():
            return StorageObject(
                key=key,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                size=0,
            )
        return StorageObject(
            key=key,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            size=stat.st_size,
            etag=hashlib.md5(path.read_bytes(), usedforsecurity=False).hexdigest(),
            storage_class="STANDARD",
        )


class S3ObjectStore:
    """Any S3-compatible object store, accessed through boto3."""

    def __init__(self, client: Any | None = None, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL or None,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY or None,
                config=BotoConfig(
                    signature_version="s3v4",
                    retries={"max_attempts": 3, "mode": "standard"},
                ),
                region_name=settings.S3_REGION,
            )
        self._client = client
        self._page_size = page_size

    def list_buckets(self) -> list[str]:
        try:
            response = self._client.list_buckets()
        except (ClientError, BotoCoreError) as e:
            raise _to_storage_error(e) from e
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def head_bucket(self, bucket: str) -> None:
        try:
            self._client.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as e:
            raise _to_storage_error(e) from e

    def iter_object_pages(self, bucket: str, prefix: str = "") -> Iterator[list[StorageObject]]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": self._page_size},
        )
        try:
            for page in pages:
                yield [
                    StorageObject(
                        key=obj["Key"],
                        last_modified=obj["LastModified"],
                        size=obj["Size"],
                        etag=obj.get("ETag", "").strip('"') or None,
                        storage_class=obj.get("StorageClass") or None,
                    )
                    for obj in page.get("Contents", [])
                ]
        except (ClientError, BotoCoreError) as e:
            raise _to_storage_error(e) from e


def _to_storage_error(e: Exception) -> StorageError:
    if isinstance(e, ClientError):
        err = e.response.get("Error", {}) or {}
        meta = e.response.get("ResponseMetadata", {}) or {}
        status = meta.get("HTTPStatusCode")
        return StorageError(
            err.get("Message") or str(e),
            status_code=int(status) if status else None,
            error_code=err.get("Code") or None,
        )
    if isinstance(e, (BotoConnectionError, HTTPClientError)):
        # Unreachable endpoint, connect or read timeout: no response to classify
        return StorageError(str(e), error_code="RequestTimeout")
    return StorageError(str(e))


def get_object_store() -> ObjectStore:
    if settings.STORAGE_BACKEND == "local":
        return LocalObjectStore(settings.LOCAL_STORAGE_DIR)
    return S3ObjectStore()
