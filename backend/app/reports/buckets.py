from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Literal, Tuple

from backend.app.reports.errors import InvalidGranularityError

Granularity = Literal["day", "week", "month", "all"]

ALL_BUCKET = "all"

GRANULARITIES: Tuple[str, ...] = ("day", "week", "month", "all")
CHART_GRANULARITIES: Tuple[str, ...] = ("day", "week", "month")


def _utc_date(when: datetime) -> date:
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.date()


def validate_granularity(value: str, allowed: Tuple[str, ...] = GRANULARITIES) -> str:
    if value not in allowed:
        raise InvalidGranularityError(value)
    return value


def week_start(day: date) -> date:
    # Monday-based weeks regardless of locale; weekday() is 0 for Monday, 6 for Sunday
    return day - timedelta(days=day.weekday())


def bucket_key(when: datetime, granularity: Granularity) -> str:
    """
    Grouping key for a UTC timestamp.

    day   -> YYYY-MM-DD
    week  -> YYYY-MM-DD (Monday of the week)
    month -> YYYY-MM
    all   -> "all"

    Keys are zero-padded so lexicographic order is chronological.
    """
    if granularity == "all":
        return ALL_BUCKET

    d = _utc_date(when)
    if granularity == "day":
        return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"
    if granularity == "month":
        return f"{d.year:04d}-{d.month:02d}"
    if granularity == "week":
        monday = week_start(d)
        return f"{monday.year:04d}-{monday.month:02d}-{monday.day:02d}"
    raise InvalidGranularityError(granularity)
