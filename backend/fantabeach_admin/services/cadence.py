"""
Match insertion cadence.

A match's day bucket pins it to one calendar date relative to the lineup
lock date (friday = lock date + 1, saturday = +2, sunday = +3), computed in
the tournament's timezone. Matches may only be inserted from the day before
that date through the date itself.
"""
from dataclasses import dataclass
from datetime import datetime

from fantabeach_admin.errors import SCHEDULE_WINDOW_VIOLATION, bad_request
from fantabeach_admin.services.timezones import (
    add_days_to_date_key,
    parse_instant,
    resolve_timezone,
    zoned_date_key,
)

MATCH_DAY_OFFSET = {
    "friday": 1,
    "saturday": 2,
    "sunday": 3,
}


@dataclass(frozen=True)
class MatchDayWindow:
    lock_date: str
    required_date: str
    window_start: str
    window_end: str
    timezone: str


def match_day_window(lineup_lock_at: str, timezone_name: str, day: str) -> MatchDayWindow:
    lock_at = parse_instant(lineup_lock_at)
    if lock_at is None:
        raise bad_request(
            "Lineup lock timestamp is invalid",
            {"lineup_lock_at": lineup_lock_at},
            SCHEDULE_WINDOW_VIOLATION,
        )
    if day not in MATCH_DAY_OFFSET:
        raise bad_request("Unknown day bucket", {"day": day}, SCHEDULE_WINDOW_VIOLATION)

    offset = MATCH_DAY_OFFSET[day]
    lock_date = zoned_date_key(lock_at, timezone_name)
    required_date = add_days_to_date_key(lock_date, offset)
    return MatchDayWindow(
        lock_date=lock_date,
        required_date=required_date,
        window_start=add_days_to_date_key(lock_date, offset - 1),
        window_end=required_date,
        timezone=resolve_timezone(timezone_name),
    )


def assert_scheduled_on_match_day(lineup_lock_at: str, timezone_name: str, day: str, scheduled_at: str) -> datetime:
    """Validate that `scheduled_at` falls on the day bucket's required date.

    Returns the parsed scheduled instant (aware UTC).
    """
    window = match_day_window(lineup_lock_at, timezone_name, day)
    scheduled = parse_instant(scheduled_at)
    if scheduled is None:
        raise bad_request(
            "Scheduled timestamp is invalid",
            {"scheduled_at": scheduled_at},
            SCHEDULE_WINDOW_VIOLATION,
        )

    scheduled_date = zoned_date_key(scheduled, timezone_name)
    if scheduled_date != window.required_date:
        raise bad_request(
            "Scheduled date does not match the required tournament day bucket",
            {
                "day": day,
                "expected_date": window.required_date,
                "scheduled_date": scheduled_date,
                "timezone": window.timezone,
            },
            SCHEDULE_WINDOW_VIOLATION,
        )
    return scheduled


def assert_match_insertion_cadence(
    lineup_lock_at: str,
    timezone_name: str,
    day: str,
    scheduled_at: str,
    today: datetime,
) -> datetime:
    """Full creation check: required play date plus the insertion window."""
    scheduled = assert_scheduled_on_match_day(lineup_lock_at, timezone_name, day, scheduled_at)
    window = match_day_window(lineup_lock_at, timezone_name, day)

    today_date = zoned_date_key(today, timezone_name)
    if today_date < window.window_start or today_date > window.window_end:
        raise bad_request(
            "Match creation is outside the allowed schedule window for this day",
            {
                "day": day,
                "window_start_date": window.window_start,
                "window_end_date": window.window_end,
                "today_date": today_date,
                "timezone": window.timezone,
            },
            SCHEDULE_WINDOW_VIOLATION,
        )
    return scheduled
