"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the window store (database or memory) sits behind an
  abstract interface and is chosen by settings.
- Fail closed: if the store cannot answer, the guarded action is refused.

Identity strategy:
- Client network address (first X-Forwarded-For entry when proxy headers
  are trusted, otherwise the socket peer).
- Falls back to the "unknown" sentinel, which shares one budget between all
  callers without a resolvable address.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.rate_limit.base import AbstractRateWindowStore, RateLimitAction, RateLimitDecision
from app.adapters.rate_limit.in_memory import InMemoryRateWindowStore
from app.adapters.rate_limit.sqlalchemy_store import SqlAlchemyRateWindowStore
from app.core.config import settings
from app.core.errors import StorageAppError
from app.core.logging import hash_for_log
from app.db.session import get_session
from app.services.rate_limiter import AtomicRateLimiter, RateLimitConfig, RateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_IDENTITY = "unknown"

_memory_store: InMemoryRateWindowStore | None = None


def build_rate_limit_identity(request: Request) -> str:
    """Derive the rate limit identity for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Client address, or UNKNOWN_IDENTITY when none is available.
    """

    if settings.app.trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IDENTITY


def configured_limits() -> dict[str, RateLimitConfig]:
    """Per-action limits resolved from settings."""

    return {
        RateLimitAction.SUBMISSION.value: RateLimitConfig(
            window=timedelta(seconds=settings.app.rate_limit_submission_window_seconds),
            max_requests=settings.app.rate_limit_submission_max_requests,
        ),
    }


def get_memory_store() -> InMemoryRateWindowStore:
    """Return the process-wide in-memory store (created on first use)."""

    global _memory_store
    if _memory_store is None:
        _memory_store = InMemoryRateWindowStore()
    return _memory_store


def get_window_store(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AbstractRateWindowStore:
    """FastAPI dependency selecting the configured window store."""

    if settings.app.rate_limit_backend == "memory":
        return get_memory_store()
    return SqlAlchemyRateWindowStore(session)


def get_rate_limiter(
    store: Annotated[AbstractRateWindowStore, Depends(get_window_store)],
) -> RateLimiter:
    """FastAPI dependency building a limiter for the configured strategy.

    The limiter is stateless, so building one per request is cheap and keeps
    every decision tied to the store.
    """

    limiter_cls = AtomicRateLimiter if settings.app.rate_limit_strategy == "atomic" else RateLimiter
    return limiter_cls(store, limits=configured_limits())


def _rate_limit_headers(decision: RateLimitDecision, retry_after: int) -> dict[str, str]:
    if not settings.app.rate_limit_include_headers:
        return {}
    return {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_time.timestamp())),
    }


def _window_description(window: timedelta) -> str:
    if window == timedelta(days=1):
        return "per day"
    hours = window.total_seconds() / 3600
    if hours >= 1 and hours.is_integer():
        return f"every {int(hours)} hours"
    return f"every {int(window.total_seconds())} seconds"


async def enforce_submission_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> RateLimitDecision | None:
    """FastAPI dependency enforcing the submission rate limit.

    When enabled, consumes one submission from the caller's budget. If the
    caller has exhausted the window, raises HTTP 429 with the reset time.

    Args:
        request: FastAPI request.
        limiter: Rate limiter built for this request.

    Returns:
        The decision when the submission may proceed (None when disabled).

    Raises:
        HTTPException: 429 Too Many Requests when the limit is exceeded.
        StorageAppError: When the store fails (rendered as 503, fail closed).
    """

    if not settings.app.rate_limit_enabled:
        return None

    identity = build_rate_limit_identity(request)
    identity_hash = hash_for_log(identity)

    try:
        decision = await limiter.check_rate_limit(identity, RateLimitAction.SUBMISSION)
    except StorageAppError:
        logger.error(
            "rate_limit.unavailable",
            extra={"identity_hash": identity_hash, "policy": "fail_closed"},
        )
        raise

    if decision.allowed:
        return decision

    retry_after = max(0, math.ceil((decision.reset_time - limiter.now()).total_seconds()))
    config = limiter.config_for(RateLimitAction.SUBMISSION)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": identity_hash,
            "identity_is_unknown": identity == UNKNOWN_IDENTITY,
            "limit": decision.limit,
            "retry_after_s": retry_after,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "message": (
                f"Submission limit reached. You can submit {decision.limit} reports "
                f"{_window_description(config.window)}."
            ),
            "reset_time": decision.reset_time.isoformat(),
        },
        headers=_rate_limit_headers(decision, retry_after) or None,
    )
