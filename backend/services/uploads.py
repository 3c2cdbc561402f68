"""Staging of multipart uploads on local disk."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile

from core import UploadFailed

logger = logging.getLogger(__name__)
CHUNK_SIZE = 1024 * 1024


async def _write_temp_file(upload: UploadFile, max_bytes: int) -> Path | None:
    suffix = Path(upload.filename or "").suffix.lower()
    fd, raw_path = tempfile.mkstemp(prefix="upload-", suffix=suffix)
    path = Path(raw_path)
    written = 0
    try:
        with os.fdopen(fd, "wb") as handle:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadFailed(f"File exceeds the {max_bytes} byte upload limit")
                handle.write(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    if written == 0:
        path.unlink(missing_ok=True)
        return None
    return path


@asynccontextmanager
async def staged_upload(
    upload: UploadFile | None,
    *,
    max_bytes: int,
) -> AsyncIterator[Path | None]:
    """Write an upload to a temporary file for the duration of the block.

    Yields None when no file (or an empty one) was sent. The staged file is
    removed on exit whether or not the upload to the blob store succeeded.
    """
    if upload is None:
        yield None
        return

    path = await _write_temp_file(upload, max_bytes)
    try:
        yield path
    finally:
        if path is not None:
            try:
                path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(
                    "Failed to remove staged upload",
                    extra={"path": str(path)},
                    exc_info=cleanup_error,
                )
