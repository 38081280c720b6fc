"""Time sources injected into the authentication core."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive values are labelled as UTC (no conversion), matching how SQLite
    hands back ``DateTime(timezone=True)`` columns.

    :param value: Datetime to normalize.
    :returns: Aware datetime in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Clock(Protocol):
    """Port supplying the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """
    Manually driven clock used by tests and deterministic tooling.

    :param start: Initial instant (naive values are treated as UTC).
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = as_utc(start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        """Jump to an absolute instant."""
        with self._lock:
            self._now = as_utc(value)

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """
        Move the clock forward and return the new instant.

        :param delta: Amount to add; alternatively pass ``timedelta`` kwargs.
        """
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now = self._now + step
            return self._now
