"""Factory pattern for creating media uploader instances."""

from app.adapters.media.base import AbstractMediaUploader
from app.adapters.media.cloudinary_client import CloudinaryUploader
from app.core.config import settings
from app.core.errors import MediaUploadAppError


def create_media_uploader() -> AbstractMediaUploader:
    """Instantiate the media uploader for the configured provider.

    Reads configuration from app.core.config.settings (Pydantic Settings).

    Returns:
        AbstractMediaUploader: Configured uploader instance.

    Raises:
        MediaUploadAppError: If provider-specific requirements are not met.
    """
    media = settings.media
    provider = media.provider.lower()

    if provider == "cloudinary":
        missing = [
            name
            for name, value in (
                ("MEDIA_CLOUD_NAME", media.cloud_name),
                ("MEDIA_API_KEY", media.api_key),
                ("MEDIA_API_SECRET", media.api_secret),
            )
            if not value
        ]
        if missing:
            raise MediaUploadAppError(
                code="media_missing_credentials",
                message=f"Cloudinary provider requires {', '.join(missing)}",
            )
        return CloudinaryUploader(
            cloud_name=media.cloud_name,
            api_key=media.api_key,
            api_secret=media.api_secret,
            upload_prefix=media.upload_prefix,
            image_folder=media.image_folder,
            video_folder=media.video_folder,
            timeout_seconds=media.timeout_seconds,
        )

    raise MediaUploadAppError(
        code="media_unknown_provider",
        message=f"Unknown media provider: '{provider}'. Supported providers: cloudinary",
    )


def get_media_uploader() -> AbstractMediaUploader:
    """FastAPI dependency returning the configured uploader."""
    return create_media_uploader()
