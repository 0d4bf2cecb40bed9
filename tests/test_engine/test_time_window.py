"""
Time Window Resolver Tests.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from rechargepanel.engine.time_window import (
    DateRange,
    TimeRangeType,
    TimeWindow,
    resolve_window,
)
from rechargepanel.errors import InvalidRangeError

SHANGHAI = ZoneInfo("Asia/Shanghai")


def at(*args) -> datetime:
    return datetime(*args, tzinfo=SHANGHAI)


class TestSymbolicRanges:
    """today / week / month / last_month."""

    def setup_method(self):
        # Wednesday
        self.now = at(2026, 10, 14, 15, 30)

    def test_today(self):
        w = resolve_window("today", now=self.now)
        assert w.start == at(2026, 10, 14)
        assert w.end == at(2026, 10, 15)

    def test_week_starts_monday_and_ends_tomorrow(self):
        w = resolve_window(TimeRangeType.WEEK, now=self.now)
        assert w.start == at(2026, 10, 12)
        assert w.start.isoweekday() == 1
        assert w.end == at(2026, 10, 15)

    def test_week_on_sunday_rolls_back_six_days(self):
        sunday = at(2026, 10, 18, 9, 0)
        w = resolve_window("week", now=sunday)
        assert w.start == at(2026, 10, 12)
        assert w.end == at(2026, 10, 19)

    def test_week_on_monday_starts_today(self):
        monday = at(2026, 10, 12, 0, 0)
        w = resolve_window("week", now=monday)
        assert w.start == at(2026, 10, 12)
        assert w.end == at(2026, 10, 13)

    def test_month(self):
        w = resolve_window("month", now=self.now)
        assert w.start == at(2026, 10, 1)
        assert w.end == at(2026, 11, 1)

    def test_december_month_ends_next_year(self):
        w = resolve_window("month", now=at(2026, 12, 31, 23, 59))
        assert w.start == at(2026, 12, 1)
        assert w.end == at(2027, 1, 1)

    def test_last_month(self):
        w = resolve_window("last_month", now=self.now)
        assert w.start == at(2026, 9, 1)
        assert w.end == at(2026, 10, 1)

    def test_last_month_in_january_is_previous_december(self):
        w = resolve_window("last_month", now=at(2027, 1, 5, 8, 0))
        assert w.start == at(2026, 12, 1)
        assert w.end == at(2027, 1, 1)

    @pytest.mark.parametrize("selector", ["today", "week", "month", "last_month"])
    def test_start_before_end_and_stable(self, selector):
        first = resolve_window(selector, now=self.now)
        second = resolve_window(selector, now=self.now)
        assert first.start < first.end
        assert first == second

    def test_naive_now_is_taken_in_stats_timezone(self):
        w = resolve_window("today", now=datetime(2026, 10, 14, 1, 0), tz=SHANGHAI)
        assert w.start == at(2026, 10, 14)

    def test_now_in_other_zone_is_converted(self):
        # 20:00 UTC on the 13th is already the 14th in Shanghai
        utc_now = datetime(2026, 10, 13, 20, 0, tzinfo=timezone.utc)
        w = resolve_window("today", now=utc_now, tz=SHANGHAI)
        assert w.start == at(2026, 10, 14)

    def test_unknown_selector(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("fortnight", now=self.now)


class TestCustomRange:

    def setup_method(self):
        self.now = at(2026, 10, 14, 15, 30)

    def test_dates_cover_whole_end_day(self):
        w = resolve_window(
            "custom", DateRange(date(2026, 10, 1), date(2026, 10, 7)), now=self.now
        )
        assert w.start == at(2026, 10, 1)
        assert w.end == at(2026, 10, 8)
        assert w.days == 7

    def test_datetimes_used_as_given(self):
        w = resolve_window(
            "custom", DateRange(at(2026, 10, 1, 8), at(2026, 10, 1, 20)), now=self.now
        )
        assert w.start == at(2026, 10, 1, 8)
        assert w.end == at(2026, 10, 1, 20)

    def test_missing_bounds(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("custom", None, now=self.now)
        with pytest.raises(InvalidRangeError):
            resolve_window("custom", DateRange(date(2026, 10, 1), None), now=self.now)

    def test_start_equal_end_rejected(self):
        with pytest.raises(InvalidRangeError):
            resolve_window(
                "custom", DateRange(date(2026, 10, 1), date(2026, 10, 1)), now=self.now
            )

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidRangeError):
            resolve_window(
                "custom", DateRange(date(2026, 10, 8), date(2026, 10, 1)), now=self.now
            )

    def test_invalid_range_is_a_value_error(self):
        with pytest.raises(ValueError):
            resolve_window(
                "custom", DateRange(at(2026, 10, 2), at(2026, 10, 1)), now=self.now
            )


class TestTimeWindow:

    def test_rejects_empty_window(self):
        with pytest.raises(InvalidRangeError):
            TimeWindow(at(2026, 1, 1), at(2026, 1, 1))

    def test_rejects_naive_bounds(self):
        with pytest.raises(InvalidRangeError):
            TimeWindow(datetime(2026, 1, 1), datetime(2026, 1, 2))

    def test_half_open(self):
        w = TimeWindow(at(2026, 1, 1), at(2026, 1, 2))
        assert w.contains(at(2026, 1, 1))
        assert not w.contains(at(2026, 1, 2))
        assert w.span == timedelta(days=1)

    def test_utc_bounds_are_naive_utc(self):
        w = TimeWindow(at(2026, 1, 1), at(2026, 1, 2))
        start, end = w.utc_bounds()
        assert start == datetime(2025, 12, 31, 16, 0)
        assert end == datetime(2026, 1, 1, 16, 0)
        assert start.tzinfo is None

    def test_local_dates(self):
        w = TimeWindow(at(2026, 2, 27), at(2026, 3, 2))
        assert w.local_dates() == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1)]
