"""Staleness policy: decides whether cached data is still fresh.

Pure functions with no I/O. Both collections share the same fixed
:data:`MAX_AGE` of seven days. The boundary is inclusive of staleness: data
that is exactly ``MAX_AGE`` old is stale.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

MAX_AGE = timedelta(days=7)
"""How long fetched data is served without contacting the API."""


def utcnow() -> datetime:
    """Current time as an aware UTC datetime; the default clock of the orchestrators."""
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def is_stale(last_fetched_at: Optional[datetime], max_age: timedelta, now: datetime) -> bool:
    """Return True if data fetched at *last_fetched_at* must be refetched at *now*.

    Never-fetched data (``None``) is stale. Naive datetimes are taken as UTC.
    """
    if last_fetched_at is None:
        return True
    return _aware(now) - _aware(last_fetched_at) >= max_age


def days_since(last_fetched_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since *last_fetched_at*, or ``None`` if never fetched."""
    if last_fetched_at is None:
        return None
    return (_aware(now) - _aware(last_fetched_at)).days


def should_show_refresh_hint(
    last_fetched_at: Optional[datetime], now: datetime, max_age: timedelta = MAX_AGE
) -> bool:
    """Whether the UI should suggest a manual refresh.

    True once the data is at least *max_age* old; never for data that was
    never fetched, since the first load fetches anyway.
    """
    days = days_since(last_fetched_at, now)
    return days is not None and days >= max_age.days
