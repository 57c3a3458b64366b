"""
ops/rules.py -- Pure business rules shared by OpsStore and the route layer.

Kept free of I/O so each rule can be unit-tested with fixed clocks:
  create_slug()            -- URL slug from a blog post title
  parse_absence_bound()    -- RFC 3339 or YYYY-MM-DD to an aware UTC datetime
  initial_absence_status() -- auto-approve an absence that is already running
  parse_timestamp()        -- lenient ISO 8601 parse used by statistics
  last_n_days()            -- date keys for the dashboard series
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ops.models import AbsenceStatus

_NON_SLUG = re.compile(r"[^\w ]", re.UNICODE)


def create_slug(title: str) -> str:
    """Lowercase, replace anything but letters/digits/spaces with a space, join words with '-'.

    "Hello, World!" -> "hello-world"
    """
    cleaned = _NON_SLUG.sub(" ", title.lower()).replace("_", " ")
    return "-".join(cleaned.split())


def parse_absence_bound(value: str, end_of_day: bool) -> Optional[datetime]:
    """Parse an absence start/end date.

    Full timestamps are taken as given (naive ones as UTC). A bare date becomes
    00:00:00 for a start bound and 23:59:59 for an end bound, so a one-day
    absence covers the whole day. Returns None if neither form parses.
    """
    value = value.strip()
    try:
        parsed_date = date.fromisoformat(value)
    except ValueError:
        parsed_date = None
    if parsed_date is not None and len(value) == 10:
        clock = time(23, 59, 59) if end_of_day else time(0, 0, 0)
        return datetime.combine(parsed_date, clock, tzinfo=timezone.utc)
    return parse_timestamp(value)


def initial_absence_status(start: Optional[datetime], end: Optional[datetime], now: datetime) -> AbsenceStatus:
    """Approved if now falls inside [start, end], pending otherwise or if either bound is unknown."""
    if start is not None and end is not None and start <= now <= end:
        return AbsenceStatus.approved
    return AbsenceStatus.pending


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def last_n_days(n: int, today: date) -> list[date]:
    """Oldest first, ending with today."""
    return [today - timedelta(days=offset) for offset in range(n - 1, -1, -1)]
