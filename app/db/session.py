"""Async SQLAlchemy session management."""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_in_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


def get_engine() -> AsyncEngine:
    """Return a singleton async engine bound to the configured database."""

    global _engine
    if _engine is None:
        url = settings.db.url
        if not url:
            raise RuntimeError("DB_URL is not configured")

        kwargs: dict = {"echo": settings.db.echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        if _is_in_memory_sqlite(url):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool

        _engine = create_async_engine(url, **kwargs)
        logger.info("db.engine_created", extra={"dialect": _engine.dialect.name})
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return a lazily initialised session factory."""

    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""

    session_factory = get_sessionmaker()
    async with session_factory() as session:
        yield session


async def init_db() -> None:
    """Create tables for all registered models if they do not exist."""

    # Import models to ensure metadata is populated before create_all.
    from app import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine.

    The next get_engine() call builds a fresh engine on the running loop.
    """

    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
