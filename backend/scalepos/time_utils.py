# Overview: UTC timestamps for sale rows, sale-number millis and report range bounds.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch for a UTC-naive datetime (default: now)."""
    dt = dt or utcnow()
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_range_bound(value, *, end: bool = False) -> Optional[datetime]:
    """
    Normalize a report range bound to a UTC-naive datetime.

    Accepts datetimes, dates and ISO-8601 strings ("2026-03-01",
    "2026-03-01T08:00:00Z", "...-06:00"). Naive values are taken as UTC.
    Date-only values cover the whole day: the start bound is midnight and
    the end bound is the last microsecond of that day, so an inclusive
    ``<= end`` filter keeps the full day. Raises ValueError on bad input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end else time.min)

    s = str(value).strip()
    if not s:
        return None
    if len(s) == 10:
        return parse_range_bound(date.fromisoformat(s), end=end)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return _as_utc_naive(datetime.fromisoformat(s))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """'2026-03-01T08:00:00Z' for JSON; naive values are UTC, microseconds dropped."""
    if dt is None:
        return None
    stamp = _as_utc_naive(dt).replace(microsecond=0)
    return stamp.isoformat() + "Z"
