# src/solunar/core/timeutil.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidCalendarDate, InvalidTimeZone

UTC = timezone.utc
DAY = timedelta(days=1)


def require_utc(dt: datetime, name: str = "dt") -> datetime:
    """
    Ensure a datetime is timezone-aware and UTC.

    Parameters
    ----------
    dt:
        datetime to validate.
    name:
        Parameter name for error messages.

    Returns
    -------
    datetime
        The same datetime if valid.

    Raises
    ------
    ValueError
        If dt is naive or not UTC.
    """
    if dt.tzinfo is None:
        raise ValueError(f"{name} must be timezone-aware UTC datetime (got naive datetime)")
    off = dt.utcoffset()
    if off is None:
        raise ValueError(f"{name} has invalid tzinfo (utcoffset is None): {dt.tzinfo!r}")
    if off != timedelta(0):
        raise ValueError(f"{name} must be UTC (utcoffset=0). Got: {dt.tzinfo!r}")
    return dt


def require_utc_range(start_utc: datetime, end_utc: datetime) -> tuple[datetime, datetime]:
    """
    Validate [start_utc, end_utc) as UTC and ensure end_utc > start_utc.
    """
    start_utc = require_utc(start_utc, "start_utc")
    end_utc = require_utc(end_utc, "end_utc")
    if end_utc <= start_utc:
        raise ValueError("end_utc must be greater than start_utc")
    return start_utc, end_utc


def as_utc(dt: datetime, name: str = "dt") -> datetime:
    """Convert any aware datetime to UTC; naive input is rejected."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (got naive datetime)")
    return dt.astimezone(UTC)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open UTC interval [start, end)."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        require_utc_range(self.start, self.end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, t: datetime) -> bool:
        return self.start <= t < self.end


def get_tzinfo(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        # zone-table directories such as "America" surface as IsADirectoryError
        raise InvalidTimeZone(f"Unknown timezone: {tz}") from e


def parse_iso_date(s: str | date) -> date:
    if isinstance(s, date):
        return s
    try:
        return date.fromisoformat(str(s))
    except ValueError as e:
        raise InvalidCalendarDate(f"Invalid date format: {s} (expected YYYY-MM-DD)") from e


def day_window(year: int, month: int, day: int, tz: str) -> TimeWindow:
    """
    Resolve a civil date in an IANA zone into its UTC day window.

    start is local midnight of the date; end is exactly 24 hours later,
    also on DST transition days.
    """
    tzinfo = get_tzinfo(tz)
    try:
        d = date(int(year), int(month), int(day))
    except ValueError as e:
        raise InvalidCalendarDate(f"Invalid calendar date: {year}-{month}-{day}") from e

    start = datetime(d.year, d.month, d.day, tzinfo=tzinfo).astimezone(UTC)
    return TimeWindow(start=start, end=start + DAY)


def iter_dates(start: date, end: date):
    """Yield each date in [start, end] inclusive."""
    cur = start
    while cur <= end:
        yield cur
        cur = cur + DAY
