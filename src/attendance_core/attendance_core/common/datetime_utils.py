from __future__ import annotations

import calendar
from datetime import date, datetime, time

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def parse_clock_time(value: str) -> time:
    """Parse HH:MM[:SS] into a time of day."""
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(value, fmt).time()
        except (TypeError, ValueError):
            continue
    raise ValidationError(f"Invalid time {value!r}, expected HH:MM[:SS]")


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours, never negative."""
    return max(0.0, (end - start).total_seconds() / 3600.0)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def weekdays_in_month(year: int, month: int) -> int:
    """Count Monday..Friday in the month."""
    _, last_day = calendar.monthrange(year, month)
    return sum(1 for day in range(1, last_day + 1) if date(year, month, day).weekday() < 5)
