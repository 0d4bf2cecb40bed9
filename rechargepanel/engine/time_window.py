"""
Time Window Resolver.

Turns a symbolic range selector into a concrete half-open [start, end) window
in the statistics timezone.

Conventions:
- Weeks start on Monday; Sunday is day 7 of the week that began 6 days earlier
- Months start on day 1
- "week" ends at tomorrow's midnight (this week so far)
- Custom date-only bounds are whole days: the end date is included
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo

from rechargepanel.config import settings
from rechargepanel.errors import InvalidRangeError

Bound = Union[date, datetime]


class TimeRangeType(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DateRange:
    """Caller-supplied bounds for a custom window."""
    start_date: Optional[Bound]
    end_date: Optional[Bound]


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) of timezone-aware instants."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidRangeError("Window bounds must be timezone-aware")
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Window start {self.start.isoformat()} is not before end {self.end.isoformat()}"
            )

    @property
    def tz(self) -> tzinfo:
        return self.start.tzinfo

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return self.start <= instant < self.end

    def local_dates(self) -> list[date]:
        """Every calendar day (in the window's timezone) the window touches."""
        first = self.start.date()
        last = (self.end - timedelta(microseconds=1)).astimezone(self.tz).date()
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    @property
    def days(self) -> int:
        return len(self.local_dates())

    def utc_bounds(self) -> tuple[datetime, datetime]:
        """Naive UTC bounds, matching how the ledger stores timestamps."""
        return (
            self.start.astimezone(timezone.utc).replace(tzinfo=None),
            self.end.astimezone(timezone.utc).replace(tzinfo=None),
        )


def stats_timezone(name: Optional[str] = None) -> tzinfo:
    return ZoneInfo(name or settings.stats_timezone)


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _add_months(day: date, months: int) -> date:
    """Shift a first-of-month date by whole months."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _as_instant(value: Bound, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)
    return _midnight(value, tz)


def _custom_window(custom_range: Optional[DateRange], tz: tzinfo) -> TimeWindow:
    if custom_range is None or custom_range.start_date is None or custom_range.end_date is None:
        raise InvalidRangeError("Custom range requires both start_date and end_date")

    start = _as_instant(custom_range.start_date, tz)
    end = _as_instant(custom_range.end_date, tz)
    if start >= end:
        raise InvalidRangeError(
            f"Custom range start {start.isoformat()} must be before end {end.isoformat()}"
        )

    # A bare end date means "through the end of that day"
    if not isinstance(custom_range.end_date, datetime):
        end = _midnight(custom_range.end_date + timedelta(days=1), tz)
    return TimeWindow(start=start, end=end)


def resolve_window(
    selector: Union[TimeRangeType, str],
    custom_range: Optional[DateRange] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> TimeWindow:
    """
    Resolve a selector into a TimeWindow.

    Pure function of (selector, custom_range, now, tz). When `tz` is omitted
    the timezone of `now` is used, falling back to the configured
    statistics timezone.
    """
    try:
        selector = TimeRangeType(selector)
    except ValueError:
        raise InvalidRangeError(f"Unknown time range selector: {selector!r}") from None

    if tz is None:
        tz = now.tzinfo if now is not None and now.tzinfo is not None else stats_timezone()
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    today = now.astimezone(tz).date()
    tomorrow = _midnight(today + timedelta(days=1), tz)

    if selector == TimeRangeType.TODAY:
        return TimeWindow(start=_midnight(today, tz), end=tomorrow)

    if selector == TimeRangeType.WEEK:
        monday = today - timedelta(days=today.isoweekday() - 1)
        return TimeWindow(start=_midnight(monday, tz), end=tomorrow)

    month_start = today.replace(day=1)
    if selector == TimeRangeType.MONTH:
        return TimeWindow(
            start=_midnight(month_start, tz),
            end=_midnight(_add_months(month_start, 1), tz),
        )

    if selector == TimeRangeType.LAST_MONTH:
        return TimeWindow(
            start=_midnight(_add_months(month_start, -1), tz),
            end=_midnight(month_start, tz),
        )

    return _custom_window(custom_range, tz)
