"""Rate limit window store interfaces.

The limiter depends on this abstraction (not a concrete backend) so state can
live in the relational database shared by every worker, or in process memory
for local runs and tests.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


class RateLimitAction(str, enum.Enum):
    """Action kinds that can be rate limited."""

    SUBMISSION = "submission"


@dataclass(frozen=True)
class RateWindowRecord:
    """Snapshot of one stored counting window.

    Attributes:
        id: Store-assigned record identifier.
        identity: Caller identity the window belongs to.
        action: Action kind being counted.
        count: Actions observed in this window so far.
        window_start: When the window opened (timezone-aware UTC).
    """

    id: int
    identity: str
    action: str
    count: int
    window_start: datetime


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the guarded action may proceed.
        limit: Max actions per window for this action kind.
        remaining: Actions left in the current window (0 when blocked).
        reset_time: When the current window closes (timezone-aware UTC).
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: datetime


class AbstractRateWindowStore(ABC):
    """Persistence contract for rate limit windows.

    Implementations raise StorageAppError for any backend failure.
    """

    @abstractmethod
    async def delete_expired(self, older_than: datetime) -> int:
        """Delete every window (any identity/action) opened before ``older_than``.

        Returns:
            Number of records removed.
        """
        raise NotImplementedError

    @abstractmethod
    async def find_active(
        self, identity: str, action: str, since: datetime
    ) -> RateWindowRecord | None:
        """Return the most recent window for (identity, action) opened at or after ``since``."""
        raise NotImplementedError

    @abstractmethod
    async def create(
        self, identity: str, action: str, window_start: datetime, *, count: int = 1
    ) -> RateWindowRecord:
        """Open a new window."""
        raise NotImplementedError

    @abstractmethod
    async def update_count(self, record_id: int, count: int) -> None:
        """Overwrite the count of an existing window."""
        raise NotImplementedError

    @abstractmethod
    async def increment_if_below(self, record_id: int, max_count: int) -> int | None:
        """Atomically add one to the count when it is still below ``max_count``.

        Returns:
            The new count, or None when the window is already full (or gone).
        """
        raise NotImplementedError
