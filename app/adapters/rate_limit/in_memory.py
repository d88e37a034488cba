"""In-memory rate limit window store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, replace
from datetime import datetime

from app.adapters.rate_limit.base import AbstractRateWindowStore, RateWindowRecord


@dataclass
class _WindowState:
    identity: str
    action: str
    count: int
    window_start: datetime


class InMemoryRateWindowStore(AbstractRateWindowStore):
    """Window store keeping records in a dict keyed by id.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits. Use the database store in that case.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._state_by_id: dict[int, _WindowState] = {}

    @staticmethod
    def _snapshot(record_id: int, state: _WindowState) -> RateWindowRecord:
        return RateWindowRecord(
            id=record_id,
            identity=state.identity,
            action=state.action,
            count=state.count,
            window_start=state.window_start,
        )

    def records(self) -> list[RateWindowRecord]:
        """Return every stored window, oldest first (inspection helper)."""
        with self._lock:
            snapshots = [self._snapshot(i, s) for i, s in self._state_by_id.items()]
        return sorted(snapshots, key=lambda r: (r.window_start, r.id))

    def clear(self) -> None:
        with self._lock:
            self._state_by_id.clear()

    async def delete_expired(self, older_than: datetime) -> int:
        with self._lock:
            expired = [i for i, s in self._state_by_id.items() if s.window_start < older_than]
            for record_id in expired:
                del self._state_by_id[record_id]
            return len(expired)

    async def find_active(
        self, identity: str, action: str, since: datetime
    ) -> RateWindowRecord | None:
        with self._lock:
            matches = [
                self._snapshot(i, s)
                for i, s in self._state_by_id.items()
                if s.identity == identity and s.action == action and s.window_start >= since
            ]
        if not matches:
            return None
        return max(matches, key=lambda r: (r.window_start, r.id))

    async def create(
        self, identity: str, action: str, window_start: datetime, *, count: int = 1
    ) -> RateWindowRecord:
        with self._lock:
            record_id = next(self._ids)
            state = _WindowState(
                identity=identity, action=action, count=count, window_start=window_start
            )
            self._state_by_id[record_id] = state
            return self._snapshot(record_id, state)

    async def update_count(self, record_id: int, count: int) -> None:
        with self._lock:
            state = self._state_by_id.get(record_id)
            if state is not None:
                self._state_by_id[record_id] = replace(state, count=count)

    async def increment_if_below(self, record_id: int, max_count: int) -> int | None:
        with self._lock:
            state = self._state_by_id.get(record_id)
            if state is None or state.count >= max_count:
                return None
            state.count += 1
            return state.count
