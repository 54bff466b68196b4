"""
Date-range normalisation for report queries.

Range semantics:
- Callers speak in logical, inclusive ranges: [from, to].
- The transaction source is queried with physical bounds. When `to` falls on
  a UTC midnight (a date-only boundary) it is advanced by one day and used as
  an exclusive bound, so the whole final day is included: [from, to + 1 day).
- A `to` carrying a time of day is already an instant and stays inclusive.

Everything here works in UTC. Local time is never consulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple

from backend.app.reports.errors import InvalidDateError, InvalidDateRangeError

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateRange:
    """
    Canonical UTC range used as a query filter.

    Invariants:
    - start <= end when both are present
    - end_exclusive is only set for day-boundary upper bounds
    """
    start: Optional[datetime]
    end: Optional[datetime]
    end_exclusive: Optional[datetime] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def upper_bound(self) -> Tuple[Optional[datetime], bool]:
        """(bound, inclusive). Day-boundary ends come back as the exclusive next day."""
        if self.end_exclusive is not None:
            return self.end_exclusive, False
        return self.end, True

    def contains(self, when: datetime) -> bool:
        when = _as_utc(when)
        if self.start is not None and when < self.start:
            return False
        bound, inclusive = self.upper_bound()
        if bound is None:
            return True
        return when <= bound if inclusive else when < bound


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_instant(value: Any) -> Optional[datetime]:
    """
    Accepts None, a datetime, a date, or a date-only / ISO 8601 string and
    returns an aware UTC datetime (or None when absent).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            # handles "...Z" too
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidDateError(f"Invalid date: {value!r}") from exc
        return _as_utc(parsed)
    raise InvalidDateError(f"Unsupported date value: {value!r}")


def is_day_boundary(value: datetime) -> bool:
    value = _as_utc(value)
    return value.time() == time.min


def validate_date_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidDateRangeError()


def normalize_range(start: Any = None, end: Any = None) -> DateRange:
    """
    Validates and normalises optional boundaries.

    - both absent: unbounded, no filter
    - one present: open-ended on the other side
    - both present: start must not be after end (equal is a valid window)
    """
    start_dt = coerce_instant(start)
    end_dt = coerce_instant(end)
    validate_date_range(start_dt, end_dt)

    end_exclusive = None
    if end_dt is not None and is_day_boundary(end_dt):
        end_exclusive = end_dt + ONE_DAY
    return DateRange(start=start_dt, end=end_dt, end_exclusive=end_exclusive)


def build_utc_range_exclusive(start: Any, end: Any) -> DateRange:
    """Both bounds required. Used by the chart path, which has no unbounded mode."""
    start_dt = coerce_instant(start)
    end_dt = coerce_instant(end)
    if start_dt is None or end_dt is None:
        raise InvalidDateError("Both 'from' and 'to' are required")
    return normalize_range(start_dt, end_dt)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """UTC ISO 8601 with millisecond precision and a Z suffix."""
    if value is None:
        return None
    value = _as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_iso_or_none(value: Any) -> Optional[str]:
    """Loose query value -> canonical ISO string, or None if missing/unparseable."""
    try:
        return to_iso(coerce_instant(value))
    except InvalidDateError:
        return None


def require_iso_range(start: Any, end: Any) -> Optional[Tuple[str, str]]:
    """
    Both sides as canonical ISO strings, or None when either is missing or
    invalid. Raises InvalidDateRangeError when from > to.
    """
    start_iso = to_iso_or_none(start)
    end_iso = to_iso_or_none(end)
    if not start_iso or not end_iso:
        return None
    validate_date_range(coerce_instant(start_iso), coerce_instant(end_iso))
    return start_iso, end_iso


def default_window(today: date) -> Tuple[date, date]:
    """Start of `today`'s year through `today`. `today` comes from the caller's clock."""
    return date(today.year, 1, 1), today
