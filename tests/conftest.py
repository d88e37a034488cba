"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before anything imports app.core.config, so
every test runs against an in-memory SQLite database and a known admin
password.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ADMIN_AUTH_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_PASSWORD", "test-admin-secret")
os.environ.setdefault("APP_RATE_LIMIT_BACKEND", "database")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.adapters.media.base import AbstractMediaUploader
from app.adapters.media.factory import get_media_uploader
from app.core import rate_limit as rate_limit_module
from app.core.app_factory import create_app
from app.core.errors import MediaUploadAppError
from app.db.session import Base


ADMIN_HEADERS = {"X-Admin-Password": "test-admin-secret"}


class FakeClock:
    """Deterministic UTC clock used to move through rate limit windows."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeMediaUploader(AbstractMediaUploader):
    """Records uploads and hands back predictable URLs."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.uploads: list[tuple[str, str | None, int]] = []
        self.deleted: list[str] = []

    async def upload_image(self, content, *, filename=None, content_type=None) -> str:
        return self._record("image", content, filename)

    async def upload_video(self, content, *, filename=None, content_type=None) -> str:
        return self._record("video", content, filename)

    async def delete(self, public_id, resource_type="image") -> None:
        self.deleted.append(public_id)

    def _record(self, kind: str, content: bytes, filename: str | None) -> str:
        if self.fail:
            raise MediaUploadAppError(code="media_upload_failed", message=f"Failed to upload {kind}")
        self.uploads.append((kind, filename, len(content)))
        return f"https://media.example.test/{kind}/{len(self.uploads)}-{filename or 'upload'}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def media() -> FakeMediaUploader:
    return FakeMediaUploader()


@pytest.fixture(autouse=True)
def reset_memory_store() -> Iterator[None]:
    """Each test starts with an empty process-wide in-memory window store."""
    rate_limit_module._memory_store = None
    yield
    rate_limit_module._memory_store = None


@pytest.fixture
def app(media: FakeMediaUploader):
    application = create_app()
    application.dependency_overrides[get_media_uploader] = lambda: media
    return application


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    """Test client with lifespan: a fresh in-memory database per test."""
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from app import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
