"""
Tournament timezone resolution and calendar-date keys.

All day-level comparisons in the admin core are done on "YYYY-MM-DD" keys
computed in the tournament's resolved zone, never on raw instants.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"


def resolve_timezone(name: Optional[str]) -> str:
    """Return `name` if it is a loadable IANA zone, else UTC."""
    if not name or not name.strip():
        return FALLBACK_TIMEZONE
    candidate = name.strip()
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to %s", candidate, FALLBACK_TIMEZONE)
        return FALLBACK_TIMEZONE
    return candidate


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Naive values are read as UTC. Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Canonical storage form: UTC with a trailing Z, second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def zoned_date_key(instant: datetime, timezone_name: Optional[str]) -> str:
    """Calendar date of `instant` as seen in the tournament's zone."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    zone = ZoneInfo(resolve_timezone(timezone_name))
    return instant.astimezone(zone).date().isoformat()


def add_days_to_date_key(date_key: str, days: int) -> str:
    return (date.fromisoformat(date_key) + timedelta(days=days)).isoformat()
