"""Per-identity sliding-window rate limiter.

The limiter keeps no state of its own: every decision is computed from the
window store, so all service instances sharing a store agree on the counts.

Two strategies share one decision contract:

- ``RateLimiter`` (two-step): read the active window, then write ``count + 1``.
  Concurrent callers that read the same count can all be allowed, so the
  limit may be overshot by up to (racers - 1).
- ``AtomicRateLimiter``: replaces the write with a conditional increment that
  only succeeds while ``count < max_requests``; racers past the limit are
  denied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

from app.adapters.rate_limit.base import (
    AbstractRateWindowStore,
    RateLimitAction,
    RateLimitDecision,
    RateWindowRecord,
)
from app.core.errors import RateLimitConfigurationError
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit for one action kind.

    Attributes:
        window: Length of the counting window.
        max_requests: Allowed actions per window.
    """

    window: timedelta
    max_requests: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window <= timedelta(0):
            raise ValueError("window must be positive")


RATE_LIMITS: Mapping[str, RateLimitConfig] = {
    RateLimitAction.SUBMISSION.value: RateLimitConfig(window=timedelta(hours=24), max_requests=10),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Decide whether an identity may perform an action right now."""

    strategy = "two_step"

    def __init__(
        self,
        store: AbstractRateWindowStore,
        *,
        limits: Mapping[str, RateLimitConfig] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Window store holding the counters.
            limits: Per-action configuration, keyed by action value.
                Defaults to RATE_LIMITS.
            clock: Time source returning timezone-aware UTC datetimes.
        """
        self._store = store
        self._limits = dict(RATE_LIMITS if limits is None else limits)
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def config_for(self, action: RateLimitAction | str) -> RateLimitConfig:
        """Return the configuration for an action kind.

        Raises:
            RateLimitConfigurationError: If the action kind is not configured.
        """
        key = action.value if isinstance(action, RateLimitAction) else action
        config = self._limits.get(key)
        if config is None:
            raise RateLimitConfigurationError(
                code="rate_limit_action_not_configured",
                message=f"No rate limit configured for action '{key}'",
                details={"action": key},
            )
        return config

    async def check_rate_limit(
        self, identity: str, action: RateLimitAction | str
    ) -> RateLimitDecision:
        """Consume one action for ``identity`` if the window allows it.

        Sweeps expired windows for every identity, then opens, increments or
        reads the caller's active window.

        Args:
            identity: Stable caller token (may be the "unknown" sentinel).
            action: Configured action kind.

        Returns:
            RateLimitDecision with allowance, remaining budget and reset time.

        Raises:
            ValueError: If identity is empty.
            RateLimitConfigurationError: If the action kind is not configured.
            StorageAppError: If the window store fails; no decision is made.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        config = self.config_for(action)
        action_key = action.value if isinstance(action, RateLimitAction) else action

        now = self._clock()
        lower_bound = now - config.window

        swept = await self._store.delete_expired(lower_bound)
        if swept:
            logger.debug("rate_limit.swept", extra={"records": swept})

        record = await self._store.find_active(identity, action_key, lower_bound)

        if record is None:
            await self._store.create(identity, action_key, now, count=1)
            decision = RateLimitDecision(
                allowed=True,
                limit=config.max_requests,
                remaining=config.max_requests - 1,
                reset_time=now + config.window,
            )
            self._log(decision, identity, action_key, window_opened=True)
            return decision

        reset_time = record.window_start + config.window

        if record.count >= config.max_requests:
            decision = self._denied(config, reset_time)
        else:
            decision = await self._consume(record, config, reset_time)

        self._log(decision, identity, action_key, window_opened=False)
        return decision

    async def _consume(
        self, record: RateWindowRecord, config: RateLimitConfig, reset_time: datetime
    ) -> RateLimitDecision:
        new_count = record.count + 1
        await self._store.update_count(record.id, new_count)
        return RateLimitDecision(
            allowed=True,
            limit=config.max_requests,
            remaining=max(0, config.max_requests - new_count),
            reset_time=reset_time,
        )

    @staticmethod
    def _denied(config: RateLimitConfig, reset_time: datetime) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=False,
            limit=config.max_requests,
            remaining=0,
            reset_time=reset_time,
        )

    def _log(
        self, decision: RateLimitDecision, identity: str, action: str, *, window_opened: bool
    ) -> None:
        fields = {
            "action": action,
            "identity_hash": hash_for_log(identity),
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_time": decision.reset_time.isoformat(),
            "strategy": self.strategy,
        }
        if not decision.allowed:
            logger.warning("rate_limit.denied", extra=fields)
        elif window_opened:
            logger.info("rate_limit.window_opened", extra=fields)
        else:
            logger.debug("rate_limit.allowed", extra=fields)


class AtomicRateLimiter(RateLimiter):
    """Rate limiter whose increment is a single conditional update.

    A concurrent caller that loses the race for the last slot is denied
    instead of overshooting the limit.
    """

    strategy = "atomic"

    async def _consume(
        self, record: RateWindowRecord, config: RateLimitConfig, reset_time: datetime
    ) -> RateLimitDecision:
        new_count = await self._store.increment_if_below(record.id, config.max_requests)
        if new_count is None:
            return self._denied(config, reset_time)
        return RateLimitDecision(
            allowed=True,
            limit=config.max_requests,
            remaining=max(0, config.max_requests - new_count),
            reset_time=reset_time,
        )
