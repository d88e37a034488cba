"""Photo upload validation."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, UploadFile

from app.core.config import settings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif", "image/heic", "image/heif"}
)


@dataclass(frozen=True)
class ImageUpload:
    """A photo read fully into memory, ready to hand to the media host."""

    content: bytes
    filename: str | None
    content_type: str | None


async def read_upload_file_limited(file: UploadFile, *, max_bytes: int) -> bytes:
    """Read an uploaded file in chunks enforcing a size limit.

    Uses file.size when the multipart headers carry it, and enforces the limit
    again while reading so a lying header cannot exhaust memory.

    Raises:
        HTTPException: 413 if the file exceeds ``max_bytes``.
    """
    file_size = getattr(file, "size", None)
    limit_mb = max_bytes // (1024 * 1024)

    if file_size is not None and file_size > max_bytes:
        logger.warning(
            "file_validation.rejected_by_header",
            extra={"file_size": file_size, "max_bytes": max_bytes},
        )
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {limit_mb}MB",
        )

    size = 0
    chunks: list[bytes] = []

    while True:
        chunk = await file.read(8192)
        if not chunk:
            break

        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "file_validation.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size: {limit_mb}MB",
            )
        chunks.append(chunk)

    return b"".join(chunks)


async def read_images(files: list[UploadFile]) -> list[ImageUpload]:
    """Read and validate the photos attached to a submission.

    Empty parts (browsers send one for an untouched file input) are skipped.

    Raises:
        ValidationAppError: No files, too many files, or a non-image file.
        HTTPException: 413 if a single photo is over the size limit.
    """
    if not files:
        raise ValidationAppError(
            code="images_required",
            message="At least one image is required",
        )
    if len(files) > settings.app.max_images:
        raise ValidationAppError(
            code="too_many_images",
            message=f"At most {settings.app.max_images} images can be attached",
            details={"max_images": settings.app.max_images},
        )

    max_bytes = settings.app.max_image_size_mb * 1024 * 1024
    images: list[ImageUpload] = []

    for file in files:
        content = await read_upload_file_limited(file, max_bytes=max_bytes)
        if not content:
            continue

        content_type = (file.content_type or "").lower()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationAppError(
                code="invalid_image_type",
                message="Only image files can be attached",
                details={"file_name": file.filename or "", "content_type": content_type},
            )
        images.append(ImageUpload(content=content, filename=file.filename, content_type=content_type))

    if not images:
        raise ValidationAppError(
            code="images_required",
            message="At least one valid image is required",
        )
    return images
