"""Tests for the Cloudinary media adapter and its factory."""

from unittest.mock import patch

import pytest
from cloudinary.exceptions import Error as CloudinaryError

from app.adapters.media.cloudinary_client import (
    IMAGE_TRANSFORMATION,
    VIDEO_TRANSFORMATION,
    CloudinaryUploader,
)
from app.adapters.media.factory import create_media_uploader
from app.core.errors import MediaUploadAppError

ACCOUNT = {"cloud_name": "demo", "api_key": "key-123", "api_secret": "shh"}


def _uploader(**kwargs) -> CloudinaryUploader:
    return CloudinaryUploader(**ACCOUNT, timeout_seconds=5.0, **kwargs)


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.upload")
async def test_upload_image_passes_folder_transformation_and_account(mock_upload) -> None:
    mock_upload.return_value = {"secure_url": "https://res.example.test/a.jpg", "public_id": "a"}

    url = await _uploader().upload_image(b"jpeg-bytes", filename="a.jpg", content_type="image/jpeg")

    assert url == "https://res.example.test/a.jpg"
    mock_upload.assert_called_once()
    (stream,), options = mock_upload.call_args
    assert stream.read() == b"jpeg-bytes"
    assert stream.name == "a.jpg"
    assert options["resource_type"] == "image"
    assert options["folder"] == "spot-vigilante/images"
    assert options["transformation"] == IMAGE_TRANSFORMATION
    assert options["timeout"] == 5.0
    assert {k: options[k] for k in ACCOUNT} == ACCOUNT
    # Host stays at the SDK default unless configured
    assert "upload_prefix" not in options


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.upload")
async def test_upload_video_uses_video_folder(mock_upload) -> None:
    mock_upload.return_value = {"secure_url": "https://res.example.test/v.mp4"}

    uploader = _uploader(video_folder="clips", upload_prefix="https://api-eu.cloudinary.com")
    url = await uploader.upload_video(b"mp4", filename="v.mp4")

    assert url == "https://res.example.test/v.mp4"
    options = mock_upload.call_args.kwargs
    assert options["resource_type"] == "video"
    assert options["folder"] == "clips"
    assert options["transformation"] == VIDEO_TRANSFORMATION
    assert options["upload_prefix"] == "https://api-eu.cloudinary.com"


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.upload")
async def test_provider_error_becomes_media_upload_error(mock_upload) -> None:
    mock_upload.side_effect = CloudinaryError("Invalid Signature")

    with pytest.raises(MediaUploadAppError) as exc_info:
        await _uploader().upload_image(b"x", filename="a.jpg")

    assert exc_info.value.code == "media_upload_failed"
    assert exc_info.value.details == {"provider": "cloudinary"}
    assert "Invalid Signature" not in exc_info.value.message


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.upload")
async def test_network_error_becomes_media_upload_error(mock_upload) -> None:
    mock_upload.side_effect = ConnectionRefusedError("connection refused")

    with pytest.raises(MediaUploadAppError) as exc_info:
        await _uploader().upload_image(b"x")

    assert exc_info.value.code == "media_upload_failed"


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.upload")
async def test_missing_secure_url_is_an_error(mock_upload) -> None:
    mock_upload.return_value = {"public_id": "a"}

    with pytest.raises(MediaUploadAppError):
        await _uploader().upload_image(b"x")


@pytest.mark.asyncio
@patch("app.adapters.media.cloudinary_client.cloudinary.uploader.destroy")
async def test_delete_calls_destroy(mock_destroy) -> None:
    mock_destroy.return_value = {"result": "ok"}

    await _uploader().delete("spot-vigilante/videos/a", resource_type="video")

    mock_destroy.assert_called_once()
    assert mock_destroy.call_args.args == ("spot-vigilante/videos/a",)
    assert mock_destroy.call_args.kwargs["resource_type"] == "video"
    assert mock_destroy.call_args.kwargs["api_secret"] == "shh"


class TestFactory:
    @patch("app.adapters.media.factory.settings")
    def test_missing_credentials(self, mock_settings) -> None:
        mock_settings.media.provider = "cloudinary"
        mock_settings.media.cloud_name = "demo"
        mock_settings.media.api_key = None
        mock_settings.media.api_secret = ""

        with pytest.raises(MediaUploadAppError) as exc_info:
            create_media_uploader()

        assert exc_info.value.code == "media_missing_credentials"
        assert "MEDIA_API_KEY" in exc_info.value.message
        assert "MEDIA_API_SECRET" in exc_info.value.message

    @patch("app.adapters.media.factory.settings")
    def test_unknown_provider(self, mock_settings) -> None:
        mock_settings.media.provider = "s3"

        with pytest.raises(MediaUploadAppError) as exc_info:
            create_media_uploader()

        assert exc_info.value.code == "media_unknown_provider"

    @patch("app.adapters.media.factory.settings")
    def test_builds_cloudinary_uploader(self, mock_settings) -> None:
        mock_settings.media.provider = "Cloudinary"
        mock_settings.media.cloud_name = "demo"
        mock_settings.media.api_key = "k"
        mock_settings.media.api_secret = "s"
        mock_settings.media.upload_prefix = None
        mock_settings.media.image_folder = "img"
        mock_settings.media.video_folder = "vid"
        mock_settings.media.timeout_seconds = 5.0

        assert isinstance(create_media_uploader(), CloudinaryUploader)
