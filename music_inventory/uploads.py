"""
Music Inventory - Image Uploads

Song cover images arrive as multipart uploads.  They are streamed to the
upload staging directory under a generated name, read back into the song
record as bytes, and then discarded from disk.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from fastapi import UploadFile
from loguru import logger

from music_inventory.config import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    MAX_IMAGE_SIZE_BYTES,
    MAX_IMAGE_SIZE_MB,
)
from music_inventory.exceptions import CatalogError

CHUNK_SIZE = 65536


class UploadRejected(CatalogError):
    """Raised when an uploaded file is not an acceptable image."""

    status_code = 400


@dataclass
class StoredUpload:
    """An upload written to the staging directory."""

    filename: str
    path: Path
    content_type: str
    size: int


def _staged_name(field_name: str) -> str:
    return f"{field_name}-{int(time.time() * 1000)}"


async def save_upload(
    file: Optional[UploadFile],
    upload_dir: Path,
    field_name: str = "image",
) -> Optional[StoredUpload]:
    """Stream *file* into *upload_dir*.

    Returns None when the form carried no file.  Raises ``UploadRejected``
    for non-image content or files over the size limit; nothing is left on
    disk in that case.
    """
    if file is None or not file.filename:
        return None

    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        allowed = ", ".join(sorted(ALLOWED_IMAGE_CONTENT_TYPES))
        raise UploadRejected(f"Image must be one of: {allowed}.")

    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = _staged_name(field_name)
    path = upload_dir / filename
    # Two uploads in the same millisecond
    suffix = 1
    while path.exists():
        filename = f"{_staged_name(field_name)}-{suffix}"
        path = upload_dir / filename
        suffix += 1

    total_size = 0
    try:
        async with aiofiles.open(path, "wb") as f:
            while chunk := await file.read(CHUNK_SIZE):
                total_size += len(chunk)
                if total_size > MAX_IMAGE_SIZE_BYTES:
                    raise UploadRejected(
                        f"Image too large. Maximum size is {MAX_IMAGE_SIZE_MB}MB."
                    )
                await f.write(chunk)
    except UploadRejected:
        path.unlink(missing_ok=True)
        raise

    if total_size == 0:
        path.unlink(missing_ok=True)
        return None

    logger.info(
        "📤 Upload received: {} ({} bytes) -> {}", file.filename, total_size, filename
    )
    return StoredUpload(
        filename=filename, path=path, content_type=content_type, size=total_size
    )


async def read_image_payload(upload: StoredUpload) -> Tuple[bytes, str]:
    """Read a staged upload into memory and remove it from disk."""
    async with aiofiles.open(upload.path, "rb") as f:
        data = await f.read()
    discard_upload(upload)
    return data, upload.content_type


def discard_upload(upload: Optional[StoredUpload]) -> None:
    """Remove a staged upload that will not be stored."""
    if upload is None:
        return
    upload.path.unlink(missing_ok=True)
