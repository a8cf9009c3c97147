"""
Tests for time-window arithmetic.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from core.domain.window import TimeWindow, query_timestamps, shift_months, window_bounds


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestTimeWindow:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("weekly", TimeWindow.WEEKLY),
            ("W", TimeWindow.WEEKLY),
            ("monthly", TimeWindow.MONTHLY),
            ("m", TimeWindow.MONTHLY),
            (" Overall ", TimeWindow.OVERALL),
            ("o", TimeWindow.OVERALL),
        ],
    )
    def test_parse(self, raw, expected):
        assert TimeWindow.parse(raw) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            TimeWindow.parse("yearly")

    def test_label_is_capitalized(self):
        assert TimeWindow.MONTHLY.label() == "Monthly"

    def test_default(self):
        assert TimeWindow.default() is TimeWindow.WEEKLY


class TestBounds:
    def test_weekly_is_seven_days(self):
        now = _utc(2024, 3, 5, 8, 30)

        lower, upper = window_bounds(TimeWindow.WEEKLY, now)

        assert upper == now
        assert lower == now - timedelta(days=7)

    def test_monthly_clamps_to_month_end(self):
        lower, _ = window_bounds(TimeWindow.MONTHLY, _utc(2023, 3, 31, 12))

        assert lower == _utc(2023, 2, 28, 12)

    def test_monthly_crosses_year(self):
        lower, _ = window_bounds(TimeWindow.MONTHLY, _utc(2024, 1, 15))

        assert lower == _utc(2023, 12, 15)

    def test_overall_is_three_years(self):
        lower, _ = window_bounds(TimeWindow.OVERALL, _utc(2024, 6, 1))

        assert lower == _utc(2021, 6, 1)

    def test_overall_from_leap_day(self):
        lower, _ = window_bounds(TimeWindow.OVERALL, _utc(2024, 2, 29))

        assert lower == _utc(2021, 2, 28)

    def test_defaults_to_current_time(self):
        before = datetime.now(timezone.utc)
        _, upper = window_bounds(TimeWindow.WEEKLY)

        assert upper >= before
        assert upper.tzinfo is not None

    def test_shift_months_forward(self):
        assert shift_months(_utc(2024, 1, 31), 1) == _utc(2024, 2, 29)

    def test_query_timestamps_match_bounds(self):
        now = _utc(2024, 3, 31, 12)

        lower, upper = query_timestamps(TimeWindow.WEEKLY, now)

        assert upper == int(now.timestamp())
        assert upper - lower == 7 * 24 * 3600
