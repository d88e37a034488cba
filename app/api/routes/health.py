from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StorageAppError
from app.db.session import get_session

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(session: Annotated[AsyncSession, Depends(get_session)]) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems. The database backs both
    the submissions and the rate limit windows, so it is pinged as well:
    when it cannot answer, the service is reported unavailable (503).

    Returns:
        dict: ``{"status": "ok", "database": "ok"}``.
    """

    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageAppError(
            code="database_unavailable",
            message="Database is unavailable",
            details={"operation": "health_check"},
        ) from exc

    return {"status": "ok", "database": "ok"}
