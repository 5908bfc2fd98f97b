from __future__ import annotations

from datetime import date, datetime, timedelta

# Monday=0 .. Friday=4
_WORKDAYS_PER_WEEK = 5
_FIRST_WEEKEND_DAY = 5


def _as_date(value: date) -> date:
    """Drop any time-of-day component; only the calendar date counts."""
    if isinstance(value, datetime):
        return value.date()
    return value


def is_business_day(day: date) -> bool:
    """Weekdays are business days. Holidays are not modelled."""
    return _as_date(day).weekday() < _FIRST_WEEKEND_DAY


def count_business_days(start: date, end: date) -> int:
    """Count Monday-Friday dates in the closed range ``[start, end]``.

    Datetimes are reduced to their calendar date first, so callers should
    normalise to one reference time zone before calling. Raises
    ``ValueError`` when ``end`` precedes ``start``.
    """
    start_day = _as_date(start)
    end_day = _as_date(end)
    if end_day < start_day:
        msg = f"end date {end_day} precedes start date {start_day}"
        raise ValueError(msg)

    span = (end_day - start_day).days + 1
    full_weeks, leftover = divmod(span, 7)

    total = full_weeks * _WORKDAYS_PER_WEEK
    tail_start = start_day + timedelta(days=full_weeks * 7)
    total += sum(1 for offset in range(leftover) if is_business_day(tail_start + timedelta(days=offset)))
    return total
