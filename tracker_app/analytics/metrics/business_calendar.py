"""Working-time arithmetic against a fixed UTC business calendar.

The calendar is Monday to Friday, 09:00 to 17:00 UTC, with no holidays.
Durations are counted in whole clock hours: the scan steps one hour at a
time from ``start`` and counts each step whose instant is a working instant.
Not accurate to the minute, which is fine for lead-time style reporting.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytz

from tracker_app.core.config import (
    HOURS_PER_WORKING_DAY,
    WORKDAY_END_HOUR,
    WORKDAY_START_HOUR,
    WORKING_WEEKDAYS,
)

ONE_HOUR = timedelta(hours=1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def is_working_instant(value: datetime) -> bool:
    """Check whether ``value`` falls inside the working window.

    Parameters
    ----------
    value : datetime
        Instant to test. Naive values are treated as UTC.

    Returns
    -------
    bool
        False on Saturday/Sunday, before 09:00 or at/after 17:00 UTC.

    Examples
    --------
    >>> is_working_instant(datetime(2024, 10, 21, 9, 0, tzinfo=pytz.UTC))
    True
    >>> is_working_instant(datetime(2024, 10, 21, 17, 0, tzinfo=pytz.UTC))
    False
    """
    ts = _as_utc(value)
    if ts.weekday() not in WORKING_WEEKDAYS:
        return False
    if ts.hour < WORKDAY_START_HOUR:
        return False
    if ts.hour >= WORKDAY_END_HOUR:
        return False
    return True


def working_duration_between(start: datetime, end: datetime) -> int:
    """Count working hours between two instants.

    Intervals shorter than one hour always yield 0, even when they straddle
    the start of the working day. A full working day yields 8, a full
    Monday-to-Monday week yields 40.

    Parameters
    ----------
    start, end : datetime
        Interval bounds. ``end`` before ``start`` yields 0.

    Returns
    -------
    int
        Number of hour steps from ``start`` (exclusive of ``end``) that land
        on a working instant.
    """
    start_utc = _as_utc(start)
    end_utc = _as_utc(end)
    if end_utc - start_utc < ONE_HOUR:
        return 0
    hours = 0
    current = start_utc
    while current < end_utc:
        if is_working_instant(current):
            hours += 1
        current += ONE_HOUR
    return hours


def working_duration_in_days(start: datetime, end: datetime) -> float:
    """Working time between two instants expressed in 8-hour days."""
    return working_duration_between(start, end) / HOURS_PER_WORKING_DAY
