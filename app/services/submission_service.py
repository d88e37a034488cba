"""Submission intake and review."""

from __future__ import annotations

import logging
import math

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.media.base import AbstractMediaUploader
from app.core.errors import NotFoundAppError, StorageAppError
from app.core.file_validation import ImageUpload
from app.models.submission import Submission, SubmissionStatus
from app.schemas.submission import (
    Pagination,
    SubmissionCreate,
    SubmissionFilters,
    SubmissionListResponse,
    SubmissionQuery,
    SubmissionRead,
)

logger = logging.getLogger(__name__)


def _storage_error(operation: str, exc: SQLAlchemyError) -> StorageAppError:
    logger.error(
        "submission.store_failed",
        extra={"operation": operation, "error_type": type(exc).__name__},
    )
    return StorageAppError(
        code="submission_store_unavailable",
        message="Submission store is unavailable",
        details={"operation": operation},
    )


class SubmissionService:
    """Create, list, fetch and review incident submissions.

    Photo upload happens before anything is written, so a failed upload never
    leaves a half-created submission behind.
    """

    def __init__(self, session: AsyncSession, media: AbstractMediaUploader | None = None) -> None:
        self.session = session
        self.media = media

    async def create(self, data: SubmissionCreate, images: list[ImageUpload]) -> SubmissionRead:
        """Upload photos and store a new PENDING submission.

        Raises:
            MediaUploadAppError: If any photo upload fails.
            StorageAppError: If the submission cannot be stored.
        """
        if self.media is None:
            raise RuntimeError("SubmissionService.create requires a media uploader")

        image_urls: list[str] = []
        for image in images:
            url = await self.media.upload_image(
                image.content,
                filename=image.filename,
                content_type=image.content_type,
            )
            image_urls.append(url)

        submission = Submission(
            title=data.title,
            description=data.description,
            location=data.location,
            spotted_at=data.spotted_at,
            video_url=str(data.video_url),
            images=image_urls,
            status=SubmissionStatus.PENDING,
        )
        try:
            self.session.add(submission)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise _storage_error("create", exc) from exc

        logger.info(
            "submission.created",
            extra={"submission_id": submission.id, "images": len(image_urls)},
        )
        return SubmissionRead.model_validate(submission)

    async def get(self, submission_id: str) -> SubmissionRead:
        return SubmissionRead.model_validate(await self._get_row(submission_id))

    async def update_status(self, submission_id: str, status: SubmissionStatus) -> SubmissionRead:
        """Move a submission to a new review status.

        Raises:
            NotFoundAppError: If the submission does not exist.
        """
        submission = await self._get_row(submission_id)
        previous = submission.status
        submission.status = status
        try:
            await self.session.commit()
            await self.session.refresh(submission)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise _storage_error("update_status", exc) from exc

        logger.info(
            "submission.status_updated",
            extra={
                "submission_id": submission_id,
                "from_status": previous.value,
                "to_status": status.value,
            },
        )
        return SubmissionRead.model_validate(submission)

    async def list_submissions(self, query: SubmissionQuery) -> SubmissionListResponse:
        """Return one filtered, sorted page plus per-status counts."""
        conditions = []
        if query.status is not None:
            conditions.append(Submission.status == query.status)
        # % and _ in user text match literally
        if query.location:
            conditions.append(Submission.location.icontains(query.location, autoescape=True))
        if query.search:
            conditions.append(
                or_(
                    Submission.title.icontains(query.search, autoescape=True),
                    Submission.description.icontains(query.search, autoescape=True),
                    Submission.location.icontains(query.search, autoescape=True),
                )
            )

        sort_by, sort_order = query.resolved_sort()
        sort_column = getattr(Submission, sort_by)
        order = sort_column.asc() if sort_order == "asc" else sort_column.desc()

        try:
            rows = (
                await self.session.execute(
                    select(Submission)
                    .where(*conditions)
                    .order_by(order, Submission.id)
                    .offset((query.page - 1) * query.limit)
                    .limit(query.limit)
                )
            ).scalars().all()
            total = (
                await self.session.execute(
                    select(func.count()).select_from(Submission).where(*conditions)
                )
            ).scalar_one()
            grouped = (
                await self.session.execute(
                    select(Submission.status, func.count()).group_by(Submission.status)
                )
            ).all()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise _storage_error("list", exc) from exc

        return SubmissionListResponse(
            submissions=[SubmissionRead.model_validate(row) for row in rows],
            pagination=Pagination(
                page=query.page,
                limit=query.limit,
                total=total,
                pages=math.ceil(total / query.limit),
            ),
            filters=SubmissionFilters(
                status=query.status,
                location=query.location,
                search=query.search,
                sort_by=query.sort_by,
                sort_order=query.sort_order,
            ),
            status_counts={status.value: count for status, count in grouped},
        )

    async def _get_row(self, submission_id: str) -> Submission:
        try:
            submission = await self.session.get(Submission, submission_id)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise _storage_error("get", exc) from exc
        if submission is None:
            raise NotFoundAppError(
                code="submission_not_found",
                message="Submission not found",
                details={"submission_id": submission_id},
            )
        return submission
