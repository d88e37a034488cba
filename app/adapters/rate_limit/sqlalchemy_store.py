"""Relational rate limit window store (SQLAlchemy async).

Each call is its own short transaction: no lock or transaction spans the
read and the write made by the limiter. Every SQLAlchemy failure is rolled
back and re-raised as StorageAppError.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.rate_limit.base import AbstractRateWindowStore, RateWindowRecord
from app.core.errors import StorageAppError
from app.models.rate_limit import RateLimit

logger = logging.getLogger(__name__)


def _to_record(row: RateLimit) -> RateWindowRecord:
    return RateWindowRecord(
        id=row.id,
        identity=row.identity,
        action=row.action,
        count=row.count,
        window_start=row.window_start,
    )


class SqlAlchemyRateWindowStore(AbstractRateWindowStore):
    """Window store backed by the ``rate_limits`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "rate_limit.store_failed",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="rate_limit_store_unavailable",
                message="Rate limit store is unavailable",
                details={"operation": operation},
            ) from exc

    async def delete_expired(self, older_than: datetime) -> int:
        async with self._guard("delete_expired"):
            result = await self.session.execute(
                delete(RateLimit)
                .where(RateLimit.window_start < older_than)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
            return result.rowcount or 0

    async def find_active(
        self, identity: str, action: str, since: datetime
    ) -> RateWindowRecord | None:
        async with self._guard("find_active"):
            res = await self.session.execute(
                select(RateLimit)
                .where(
                    RateLimit.identity == identity,
                    RateLimit.action == action,
                    RateLimit.window_start >= since,
                )
                .order_by(RateLimit.window_start.desc(), RateLimit.id.desc())
                .limit(1)
                .execution_options(populate_existing=True)
            )
            row = res.scalar_one_or_none()
            return _to_record(row) if row is not None else None

    async def create(
        self, identity: str, action: str, window_start: datetime, *, count: int = 1
    ) -> RateWindowRecord:
        async with self._guard("create"):
            row = RateLimit(identity=identity, action=action, count=count, window_start=window_start)
            self.session.add(row)
            await self.session.commit()
            return _to_record(row)

    async def update_count(self, record_id: int, count: int) -> None:
        async with self._guard("update_count"):
            await self.session.execute(
                update(RateLimit)
                .where(RateLimit.id == record_id)
                .values(count=count)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()

    async def increment_if_below(self, record_id: int, max_count: int) -> int | None:
        async with self._guard("increment_if_below"):
            result = await self.session.execute(
                update(RateLimit)
                .where(RateLimit.id == record_id, RateLimit.count < max_count)
                .values(count=RateLimit.count + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.session.rollback()
                return None
            # Row is write-locked until commit, so this reads our own increment
            new_count = (
                await self.session.execute(select(RateLimit.count).where(RateLimit.id == record_id))
            ).scalar_one()
            await self.session.commit()
            return new_count
