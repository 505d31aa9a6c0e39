"""
Reporting period resolution for the KPI analytics.

Every dashboard number is bounded by a window that starts at a range-dependent
instant (midnight today, Monday of this week, first of this month) and runs to
the evaluation instant `now`. `now` is always an explicit argument so that
results are reproducible for a given input.

Key Functions:
- start_date / total_days: Window boundaries for a TimeRange
- resolve_period: Bundle the window into a PeriodWindow
- current_period_key: The monthly Target key ("march-2026") for `now`
- parse_timestamp / in_period: Lenient date parsing and window membership

Timestamps are compared as naive datetimes. Timezone-aware inputs (including
`now`) are converted to UTC and made naive.
"""

import calendar
import math
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

from salescrm.models.enums import TimeRange
from salescrm.models.schemas import PeriodWindow


SECONDS_PER_DAY: int = 24 * 60 * 60

# Fixed English names so period keys do not depend on the process locale
MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)


def _naive(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return pd.Timestamp(moment).tz_convert("UTC").tz_localize(None).to_pydatetime()


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_date(time_range: TimeRange, now: datetime) -> datetime:
    """
    Inclusive start of the reporting window containing `now`.

    - today: midnight of now's calendar day
    - week: Monday 00:00 of the ISO week (a Sunday goes back 6 days)
    - month: the 1st of now's month at 00:00
    """
    time_range = TimeRange(time_range)
    now = _naive(now)
    today = _midnight(now)

    if time_range is TimeRange.TODAY:
        return today
    if time_range is TimeRange.WEEK:
        return today - timedelta(days=today.weekday())
    return today.replace(day=1)


def total_days(time_range: TimeRange, now: datetime) -> int:
    """Length of the window in days: 1, 7, or the number of days in now's month."""
    time_range = TimeRange(time_range)
    if time_range is TimeRange.TODAY:
        return 1
    if time_range is TimeRange.WEEK:
        return 7
    return calendar.monthrange(now.year, now.month)[1]


def current_period_key(now: datetime) -> str:
    """Monthly Target key for `now`, e.g. "march-2026". Independent of the range."""
    now = _naive(now)
    return f"{MONTH_NAMES[now.month - 1]}-{now.year:04d}"


def resolve_period(time_range: TimeRange, now: datetime) -> PeriodWindow:
    """
    Resolve the full reporting window for `time_range` at `now`.

    days_elapsed is the number of started days since the window opened
    (ceil of the elapsed fraction). days_remaining is clamped at 0; pacing
    divides by max(1, days_remaining).
    """
    time_range = TimeRange(time_range)
    now = _naive(now)
    start = start_date(time_range, now)
    days = total_days(time_range, now)
    elapsed = math.ceil((now - start).total_seconds() / SECONDS_PER_DAY)

    return PeriodWindow(
        range=time_range,
        now=now,
        start_date=start,
        total_days=days,
        days_elapsed=elapsed,
        days_remaining=max(days - elapsed, 0),
        period_key=current_period_key(now),
    )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored date or timestamp, returning None when it is missing or malformed.

    Accepts ISO dates ("2026-03-10"), local timestamps ("2026-03-10T11:30"),
    UTC timestamps ("2026-03-10T06:00:00.000Z") and datetime/date objects.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None

    parsed = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed.to_pydatetime()


def in_period(value: Any, start: datetime) -> bool:
    """True when `value` parses to an instant at or after `start`. Invalid dates are excluded."""
    parsed = parse_timestamp(value)
    return parsed is not None and parsed >= start
