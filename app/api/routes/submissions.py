from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.media.base import AbstractMediaUploader
from app.adapters.media.factory import get_media_uploader
from app.core.auth import verify_admin
from app.core.errors import ValidationAppError
from app.core.file_validation import read_images
from app.core.rate_limit import enforce_submission_rate_limit
from app.db.session import get_session
from app.models.submission import SubmissionStatus
from app.schemas.submission import (
    StatusUpdate,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionQuery,
    SubmissionRead,
)
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _format_validation_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]


@router.post(
    "",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_submission_rate_limit)],
)
async def create_submission(
    session: SessionDep,
    media: Annotated[AbstractMediaUploader, Depends(get_media_uploader)],
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    spotted_at: Annotated[str | None, Form(description="ISO-8601 date or datetime")] = None,
    video_url: Annotated[str | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File(description="One or more photos")] = None,
) -> SubmissionRead:
    """Submit a new incident report.

    The caller's submission budget is consumed before the form is looked at,
    so rejected forms still count toward the limit.

    Raises:
        HTTPException: 429 when the caller has used up the submission window,
            413 when a photo is too large.
        ValidationAppError: 400 for invalid fields or missing photos.
    """
    try:
        data = SubmissionCreate(
            title=title,
            description=description,
            location=location,
            spotted_at=spotted_at,
            video_url=video_url,
        )
    except ValidationError as exc:
        raise ValidationAppError(
            code="invalid_submission",
            message="Invalid data",
            details={"errors": _format_validation_errors(exc)},
        ) from exc

    photos = await read_images(images or [])
    return await SubmissionService(session, media).create(data, photos)


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    session: SessionDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    status_filter: Annotated[SubmissionStatus | None, Query(alias="status")] = None,
    location: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> SubmissionListResponse:
    """List submissions with filtering, free-text search, sorting and paging.

    Unknown sort fields or orders fall back to newest first.
    """
    query = SubmissionQuery(
        page=page,
        limit=limit,
        status=status_filter,
        location=location or None,
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await SubmissionService(session).list_submissions(query)


@router.get("/{submission_id}", response_model=SubmissionRead)
async def get_submission(submission_id: str, session: SessionDep) -> SubmissionRead:
    return await SubmissionService(session).get(submission_id)


@router.patch(
    "/{submission_id}",
    response_model=SubmissionRead,
    dependencies=[Depends(verify_admin)],
)
async def update_submission_status(
    submission_id: str,
    body: StatusUpdate,
    session: SessionDep,
) -> SubmissionRead:
    """Move a submission through the review workflow (admin only)."""
    return await SubmissionService(session).update_status(submission_id, body.status)
