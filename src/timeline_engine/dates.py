from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Iterator

WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday as date.weekday()


class DurationMode(str, Enum):
    """How an item's length is kept when it is moved to a new start."""

    CALENDAR = "calendar"
    BUSINESS = "business"


def to_day(value: dt.date | dt.datetime) -> dt.date:
    """Strip time-of-day (and any tzinfo) from a date or datetime."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    raise TypeError(f"expected date or datetime, got {type(value).__name__}")


def add_days(day: dt.date, n: int) -> dt.date:
    return day + dt.timedelta(days=n)


def day_difference(a: dt.date, b: dt.date) -> int:
    """Whole days from `b` to `a` (positive when `a` is later)."""
    return (a - b).days


def is_before(a: dt.date, b: dt.date) -> bool:
    return a < b


def is_after(a: dt.date, b: dt.date) -> bool:
    return a > b


def is_same_day(a: dt.date, b: dt.date) -> bool:
    return a == b


def ranges_overlap(a_start: dt.date, a_end: dt.date, b_start: dt.date, b_end: dt.date) -> bool:
    """True when two inclusive day ranges share at least one day."""
    return a_start <= b_end and b_start <= a_end


def is_business_day(day: dt.date) -> bool:
    return day.weekday() not in WEEKEND_DAYS


def business_day_duration(start: dt.date, end: dt.date) -> int:
    """
    Count weekdays `d` with `start < d <= end`.

    This is the number of working days that must be stepped over to get from
    `start` to `end`; `add_business_days(start, n)` inverts it for weekday ends.
    When `end` precedes `start` the result is the negated count of the mirror range.
    """

    if end < start:
        return -business_day_duration(end, start)

    total = day_difference(end, start)
    full_weeks, remainder = divmod(total, 7)
    count = full_weeks * 5
    cursor = add_days(start, full_weeks * 7)
    for _ in range(remainder):
        cursor = add_days(cursor, 1)
        if is_business_day(cursor):
            count += 1
    return count


def add_business_days(day: dt.date, n: int) -> dt.date:
    """Return the n-th weekday after `day` (before it when n is negative); n == 0 returns `day`."""
    step = 1 if n >= 0 else -1
    remaining = abs(n)
    cursor = day
    while remaining > 0:
        cursor = add_days(cursor, step)
        if is_business_day(cursor):
            remaining -= 1
    return cursor


def preserve_duration(
    old_start: dt.date,
    old_end: dt.date,
    new_start: dt.date,
    mode: DurationMode = DurationMode.CALENDAR,
) -> dt.date:
    """
    Compute the end that keeps an item's length after moving it to `new_start`.

    - calendar: the number of calendar days between start and end is kept.
    - business: the number of weekdays stepped over between start and end is kept,
      so an item that slides across a weekend grows by the weekend it now spans.
    """

    if mode is DurationMode.BUSINESS:
        return add_business_days(new_start, business_day_duration(old_start, old_end))
    return add_days(new_start, day_difference(old_end, old_start))


def week_start(day: dt.date, first_weekday: int = 6) -> dt.date:
    """First day of the week containing `day`; `first_weekday` uses date.weekday() numbering."""
    offset = (day.weekday() - first_weekday) % 7
    return add_days(day, -offset)


def iter_days(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    """Yield every day from `start` to `end` inclusive."""
    for offset in range(day_difference(end, start) + 1):
        yield add_days(start, offset)
