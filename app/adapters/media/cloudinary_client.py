"""Cloudinary media host adapter.

Uploads go through the official ``cloudinary`` SDK, which signs each request
with the account secret. The SDK is blocking, so every call is pushed to the
threadpool to keep the event loop free.
"""

from __future__ import annotations

import io
import logging
from typing import Any

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi.concurrency import run_in_threadpool

from app.adapters.media.base import AbstractMediaUploader, ResourceType
from app.core.errors import MediaUploadAppError

logger = logging.getLogger(__name__)

# Incoming transformations applied by the provider before storing
IMAGE_TRANSFORMATION: list[dict[str, Any]] = [
    {"width": 1200, "height": 800, "crop": "limit"},
    {"quality": "auto"},
]
VIDEO_TRANSFORMATION: list[dict[str, Any]] = [
    {"width": 1280, "height": 720, "crop": "limit"},
    {"quality": "auto"},
]


class CloudinaryUploader(AbstractMediaUploader):
    """Upload photos and videos to Cloudinary."""

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        upload_prefix: str | None = None,
        image_folder: str = "spot-vigilante/images",
        video_folder: str = "spot-vigilante/videos",
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize the uploader.

        Credentials are passed on every call instead of through the SDK's
        global ``cloudinary.config``, so several uploaders can coexist.

        Args:
            cloud_name: Cloudinary cloud name.
            api_key: Account API key.
            api_secret: Account API secret used for signing.
            upload_prefix: Optional API host override (SDK default when None).
            image_folder: Folder for uploaded photos.
            video_folder: Folder for uploaded videos.
            timeout_seconds: Per-request timeout.
        """
        self._account: dict[str, Any] = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
            "timeout": timeout_seconds,
        }
        if upload_prefix:
            self._account["upload_prefix"] = upload_prefix
        self._folders: dict[ResourceType, str] = {"image": image_folder, "video": video_folder}

    async def _call(self, operation: str, resource_type: ResourceType, func, *args, **options) -> dict[str, Any]:
        try:
            return await run_in_threadpool(
                func, *args, resource_type=resource_type, **options, **self._account
            )
        except (CloudinaryError, OSError) as exc:
            logger.error(
                "media.request_failed",
                extra={
                    "operation": operation,
                    "resource_type": resource_type,
                    "error_type": type(exc).__name__,
                },
            )
            raise MediaUploadAppError(
                code="media_upload_failed",
                message=f"Failed to {operation} {resource_type}",
                details={"provider": "cloudinary"},
            ) from exc

    async def _upload(
        self,
        resource_type: ResourceType,
        content: bytes,
        transformation: list[dict[str, Any]],
        filename: str | None,
    ) -> str:
        stream = io.BytesIO(content)
        stream.name = filename or "upload"
        result = await self._call(
            "upload",
            resource_type,
            cloudinary.uploader.upload,
            stream,
            folder=self._folders[resource_type],
            transformation=transformation,
        )

        secure_url = result.get("secure_url")
        if not secure_url:
            raise MediaUploadAppError(
                code="media_upload_failed",
                message=f"Media host returned no URL for {resource_type}",
                details={"provider": "cloudinary"},
            )

        logger.info(
            "media.uploaded",
            extra={
                "resource_type": resource_type,
                "bytes": len(content),
                "public_id": result.get("public_id"),
            },
        )
        return secure_url

    async def upload_image(
        self,
        content: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> str:
        return await self._upload("image", content, IMAGE_TRANSFORMATION, filename)

    async def upload_video(
        self,
        content: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> str:
        return await self._upload("video", content, VIDEO_TRANSFORMATION, filename)

    async def delete(self, public_id: str, resource_type: ResourceType = "image") -> None:
        await self._call("destroy", resource_type, cloudinary.uploader.destroy, public_id)
        logger.info("media.deleted", extra={"resource_type": resource_type, "public_id": public_id})
