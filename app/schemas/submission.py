"""Pydantic schemas for incident submissions."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

from app.models.submission import SubmissionStatus

SORT_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "spotted_at", "title", "status")
SORT_ORDERS: tuple[str, ...] = ("asc", "desc")


class SubmissionCreate(BaseModel):
    """Validated report fields posted by a citizen (photos travel separately)."""

    title: str = Field(..., min_length=1, max_length=200, description="Short headline of the incident.")
    description: str | None = Field(
        default=None,
        description="Optional free-text account of what happened.",
    )
    location: str = Field(..., min_length=1, max_length=255, description="Where the incident was spotted.")
    spotted_at: datetime = Field(..., description="When the incident was spotted (ISO-8601).")
    video_url: AnyHttpUrl = Field(..., description="Link to a video of the incident.")

    @field_validator("title", "location")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("spotted_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Date-only or naive inputs from the form are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SubmissionRead(BaseModel):
    """A stored submission as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    location: str
    spotted_at: datetime
    video_url: str
    images: list[str] = Field(default_factory=list)
    status: SubmissionStatus
    created_at: datetime
    updated_at: datetime


class StatusUpdate(BaseModel):
    """Admin request to move a submission through the review workflow."""

    status: SubmissionStatus


class SubmissionQuery(BaseModel):
    """Listing filters, sorting and paging.

    Unknown sort fields or orders are not errors: they fall back to
    ``created_at desc``.
    """

    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)
    status: SubmissionStatus | None = None
    location: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"

    def resolved_sort(self) -> tuple[str, str]:
        if self.sort_by in SORT_FIELDS and self.sort_order in SORT_ORDERS:
            return self.sort_by, self.sort_order
        return "created_at", "desc"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SubmissionFilters(BaseModel):
    status: SubmissionStatus | None = None
    location: str | None = None
    search: str | None = None
    sort_by: str
    sort_order: str


class SubmissionListResponse(BaseModel):
    """One page of submissions plus dashboard counters."""

    submissions: list[SubmissionRead]
    pagination: Pagination
    filters: SubmissionFilters
    status_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Number of submissions per status, across all submissions.",
    )
