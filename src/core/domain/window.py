"""Time windows for the dashboard.

This module is the single source of truth for the date-rollback logic. The
query builders (server-side filter) and the local re-filter of transfers both
derive their bounds from `window_bounds`, so the two can never drift apart.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from enum import Enum


class TimeWindow(str, Enum):
    """Supported window selectors."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    OVERALL = "overall"

    @classmethod
    def default(cls) -> "TimeWindow":
        """Return the window selected when nothing else is configured."""

        return cls.WEEKLY

    @classmethod
    def parse(cls, value: str) -> "TimeWindow":
        """Parse a selector, accepting the one-letter aliases `w`, `m`, `o`."""

        key = value.strip().lower()
        for window in cls:
            if key in (window.value, window.value[0]):
                return window
        raise ValueError(f"Unknown time window: {value!r}")

    def label(self) -> str:
        """Capitalized name used in report titles."""

        return self.value.capitalize()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move `moment` back/forward by calendar months.

    Days that do not exist in the target month are clamped to its last day
    (31 Mar - 1 month -> 28/29 Feb).
    """

    index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_bounds(window: TimeWindow, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return `(lower, upper)` for the window, with `upper` being `now`.

    - weekly: 7 days back
    - monthly: 1 calendar month back
    - overall: 3 calendar years back
    """

    now = now or utc_now()
    if window is TimeWindow.WEEKLY:
        lower = now - timedelta(days=7)
    elif window is TimeWindow.MONTHLY:
        lower = shift_months(now, -1)
    else:
        lower = shift_months(now, -36)
    return lower, now


def query_timestamps(window: TimeWindow, now: datetime | None = None) -> tuple[int, int]:
    """Same bounds as `window_bounds`, as Unix seconds for the GraphQL filters."""

    lower, upper = window_bounds(window, now)
    return int(lower.timestamp()), int(upper.timestamp())
