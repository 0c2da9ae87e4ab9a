"""
Reporting period helpers.

Periods are strings: ``YYYY-MM`` (month), ``YYYY`` (year) or ``YYYY-Www``
(week counted in 7-day blocks from January 1st). Any other string means
"current month so far". Every datetime produced here is timezone-aware UTC.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Tuple

MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
YEAR_RE = re.compile(r"^(\d{4})$")
WEEK_RE = re.compile(r"^(\d{4})-W(\d{1,2})$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _end_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.max, tzinfo=timezone.utc)


def _month(period: str) -> Optional[Tuple[int, int]]:
    match = MONTH_RE.match(period)
    if match and 1 <= int(match.group(2)) <= 12:
        return int(match.group(1)), int(match.group(2))
    return None


def month_start(now: Optional[datetime] = None) -> datetime:
    now = as_utc(now) or utc_now()
    return _utc(now.year, now.month, 1)


def year_start(now: Optional[datetime] = None) -> datetime:
    now = as_utc(now) or utc_now()
    return _utc(now.year, 1, 1)


def parse_period(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` window of a period string."""
    now = as_utc(now) or utc_now()

    month = _month(period)
    if month:
        year, month_number = month
        last_day = calendar.monthrange(year, month_number)[1]
        return _utc(year, month_number, 1), _end_of_day(_utc(year, month_number, last_day))

    match = YEAR_RE.match(period)
    if match:
        year = int(match.group(1))
        return _utc(year, 1, 1), _end_of_day(_utc(year, 12, 31))

    match = WEEK_RE.match(period)
    if match:
        year, week = int(match.group(1)), int(match.group(2))
        start = _utc(year, 1, 1) + timedelta(days=(week - 1) * 7)
        return start, _end_of_day(start + timedelta(days=6))

    return month_start(now), now


def last_period(period: str) -> Optional[str]:
    """Return the previous month for valid ``YYYY-MM`` periods, else None."""
    month = _month(period)
    if not month:
        return None
    year, month_number = month
    if month_number == 1:
        return f"{year - 1}-12"
    return f"{year}-{month_number - 1:02d}"


def format_month(moment: Optional[datetime] = None) -> str:
    moment = as_utc(moment) or utc_now()
    return f"{moment.year}-{moment.month:02d}"


def is_month_or_year(period: str) -> bool:
    return bool(_month(period) or YEAR_RE.match(period))
