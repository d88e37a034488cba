from abc import ABC, abstractmethod
from typing import Literal

ResourceType = Literal["image", "video"]


class AbstractMediaUploader(ABC):
	"""Interface for media hosts that store a file and return a durable URL."""

	@abstractmethod
	async def upload_image(
		self,
		content: bytes,
		*,
		filename: str | None = None,
		content_type: str | None = None,
	) -> str:
		"""Upload a photo and return its public HTTPS URL.

		Raises:
			MediaUploadAppError: If the provider rejects or fails the upload.
		"""
		...

	@abstractmethod
	async def upload_video(
		self,
		content: bytes,
		*,
		filename: str | None = None,
		content_type: str | None = None,
	) -> str:
		"""Upload a video and return its public HTTPS URL.

		Raises:
			MediaUploadAppError: If the provider rejects or fails the upload.
		"""
		...

	@abstractmethod
	async def delete(self, public_id: str, resource_type: ResourceType = "image") -> None:
		"""Remove a previously uploaded asset."""
		...
