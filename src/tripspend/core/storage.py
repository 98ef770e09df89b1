"""Receipt storage backends.

Receipts are written once under a tenant-prefixed key and afterwards only read, linked or
removed. ``local`` keeps them below ``LOCAL_STORAGE_PATH`` and serves them through
``/api/files``; ``s3`` talks to any S3-compatible service and hands out presigned links.
"""

from __future__ import annotations

import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tripspend.core.config import settings
from tripspend.core.logging import get_logger, log_event, log_exception, monotonic_ms

logger = get_logger(__name__)

RECEIPTS_PREFIX = "expense-receipts"


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    key: str
    byte_size: int
    content_type: str | None = None


def receipt_key(tenant_id: uuid.UUID, filename: str) -> str:
    suffix = PurePath(filename).suffix.lower()
    return f"{tenant_id}/{RECEIPTS_PREFIX}/{uuid.uuid4()}{suffix}"


class ObjectStorage:
    backend = "abstract"

    def put(
        self, *, key: str, body: bytes, content_type: str | None = None
    ) -> StoredObject:  # pragma: no cover
        raise NotImplementedError

    def get(self, *, key: str) -> bytes:  # pragma: no cover
        raise NotImplementedError

    def delete(self, *, key: str) -> None:  # pragma: no cover
        raise NotImplementedError

    def url_for(self, *, key: str) -> str:  # pragma: no cover
        raise NotImplementedError

    def _stored(
        self, key: str, body: bytes, content_type: str | None, start: float
    ) -> StoredObject:
        log_event(
            logger,
            "storage.put.success",
            backend=self.backend,
            storage_key=key,
            byte_size=len(body),
            duration_ms=monotonic_ms(start),
        )
        return StoredObject(key=key, byte_size=len(body), content_type=content_type)


class LocalObjectStorage(ObjectStorage):
    backend = "local"

    def __init__(self, root: Path):
        self._root = root.resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except OSError as e:
            log_exception(logger, "storage.put.failure", backend=self.backend, storage_key=key)
            raise StorageError(f"Could not write object: {key}") from e
        return self._stored(key, body, content_type, start)

    def get(self, *, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError as e:
            log_event(logger, "storage.get.missing", backend=self.backend, storage_key=key)
            raise StorageError(f"Object not found: {key}") from e

    def delete(self, *, key: str) -> None:
        path = self._path(key)
        path.unlink(missing_ok=True)
        # drop the per-tenant folders once their last receipt is gone
        for parent in path.parents:
            if parent == self._root:
                break
            try:
                parent.rmdir()
            except OSError:
                break
        log_event(logger, "storage.delete.success", backend=self.backend, storage_key=key)

    def url_for(self, *, key: str) -> str:
        return f"{settings.base_url.rstrip('/')}/api/files/{quote(key)}"


class S3ObjectStorage(ObjectStorage):
    backend = "s3"

    def __init__(self, *, bucket: str, client: Any) -> None:
        self._bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls) -> S3ObjectStorage:
        # S3-compatible services (MinIO) accept any region name; boto3 needs a real one
        region = settings.s3_region
        if not region or region.lower() == "auto":
            region = "us-east-1"

        client = boto3.session.Session(
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=region,
        ).client(
            "s3",
            endpoint_url=settings.s3_endpoint_url or None,
            config=Config(
                s3={"addressing_style": "path"},
                retries={"max_attempts": 5, "mode": "standard"},
                connect_timeout=30,
                read_timeout=60,
            ),
        )
        storage = cls(bucket=settings.s3_bucket, client=client)
        storage.ensure_bucket()
        return storage

    def ensure_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            self._client.create_bucket(Bucket=self._bucket)
            log_event(logger, "storage.bucket.created", bucket=self._bucket)

    def put(self, *, key: str, body: bytes, content_type: str | None = None) -> StoredObject:
        start = time.monotonic()
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=body, **extra)
        except (BotoCoreError, ClientError) as e:
            log_exception(logger, "storage.put.failure", backend=self.backend, storage_key=key)
            raise StorageError(f"Could not write object: {key}") from e
        return self._stored(key, body, content_type, start)

    def get(self, *, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            log_exception(logger, "storage.get.failure", backend=self.backend, storage_key=key)
            raise StorageError(f"Object not found: {key}") from e
        return resp["Body"].read()

    def delete(self, *, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            log_exception(
                logger, "storage.delete.failure", backend=self.backend, storage_key=key
            )
            raise StorageError(f"Could not delete object: {key}") from e
        log_event(logger, "storage.delete.success", backend=self.backend, storage_key=key)

    def url_for(self, *, key: str) -> str:
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=settings.s3_presigned_url_exp_s,
        )


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage  # noqa: PLW0603
    if _storage is None:
        if settings.storage_backend == "s3":
            _storage = S3ObjectStorage.from_settings()
        else:
            root = settings.local_storage_path
            if not root.is_absolute():
                root = Path(os.getcwd()) / root
            _storage = LocalObjectStorage(root)
    return _storage
