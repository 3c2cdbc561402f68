"""MinIO-backed blob store for uploaded images."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from functools import lru_cache
from pathlib import Path
from typing import Protocol, runtime_checkable
from uuid import uuid4

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from core import UploadFailed, settings

logger = logging.getLogger(__name__)
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@runtime_checkable
class BlobStore(Protocol):
    async def upload(self, local_path: Path, *, prefix: str) -> str: ...


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    endpoint = settings.minio_endpoint
    access_key = settings.minio_access_key
    secret_key = settings.minio_secret_key
    secure = settings.minio_secure

    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def public_object_url(object_key: str) -> str:
    """Return the public URL under which an uploaded object is served."""
    normalized_object_key = object_key.strip().lstrip("/")
    if not normalized_object_key:
        raise ValueError("object_key must not be empty")

    base_url = settings.minio_public_base_url
    if not base_url:
        scheme = "https" if settings.minio_secure else "http"
        base_url = f"{scheme}://{settings.minio_endpoint}"
    return f"{base_url.rstrip('/')}/{settings.minio_bucket}/{normalized_object_key}"


def _put_file(client: Minio, object_key: str, local_path: Path) -> None:
    content_type, _ = mimetypes.guess_type(local_path.name)
    ensure_bucket(client)
    client.fput_object(
        settings.minio_bucket,
        object_key,
        str(local_path),
        content_type=content_type or DEFAULT_CONTENT_TYPE,
    )


class MinioBlobStore:
    """Uploads staged local files and hands back their public URL."""

    def __init__(self, client: Minio | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Minio:
        return self._client or get_minio_client()

    async def upload(self, local_path: Path, *, prefix: str) -> str:
        object_key = f"{prefix.strip('/')}/{uuid4().hex}{local_path.suffix.lower()}"
        try:
            await asyncio.to_thread(_put_file, self.client, object_key, local_path)
        except (MinioException, HTTPError, OSError) as exc:
            logger.warning(
                "Blob upload failed",
                extra={"object_key": object_key},
                exc_info=exc,
            )
            raise UploadFailed() from exc
        return public_object_url(object_key)
