"""Clock capability and instant normalization.

Live-state queries ask a ``Clock`` for "now" instead of reading the platform
clock, so reports can be reproduced for a fixed instant in tests.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

import pandas as pd
import pytz


def to_utc(value) -> datetime | None:
    """Normalize a timestamp-like value into an aware UTC ``datetime``.

    Strings, ``date``/``datetime`` objects and pandas Timestamps are accepted.
    Naive values are interpreted as UTC. Returns None for missing values.

    Raises
    ------
    ValueError
        If the value is present but cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)
    if isinstance(value, date):
        return pytz.UTC.localize(datetime(value.year, value.month, value.day))
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        raise ValueError(f"Unparseable timestamp: {value!r}")
    return ts.to_pydatetime()


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=pytz.UTC)


class FixedClock:
    """Clock frozen at a single instant."""

    def __init__(self, instant):
        self._instant = to_utc(instant)
        if self._instant is None:
            raise ValueError("FixedClock requires an instant")

    def now(self) -> datetime:
        return self._instant


DEFAULT_CLOCK = SystemClock()
