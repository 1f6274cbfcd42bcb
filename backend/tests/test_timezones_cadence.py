"""Timezone fallback, calendar-date keys and the match insertion cadence."""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from fantabeach_admin.errors import SCHEDULE_WINDOW_VIOLATION, DomainError
from fantabeach_admin.services.cadence import (
    assert_match_insertion_cadence,
    assert_scheduled_on_match_day,
    match_day_window,
)
from fantabeach_admin.services.timezones import (
    add_days_to_date_key,
    format_instant,
    parse_instant,
    resolve_timezone,
    zoned_date_key,
)
from tests.conftest import utc

ZONES = ["UTC", "Europe/Rome", "America/New_York", "Asia/Tokyo", "Pacific/Auckland"]


def _local(tz: str, year, month, day, hour=12) -> str:
    return datetime(year, month, day, hour, tzinfo=ZoneInfo(tz)).isoformat()


def test_unknown_timezone_falls_back_to_utc():
    assert resolve_timezone("Mars/Olympus_Mons") == "UTC"
    assert resolve_timezone("") == "UTC"
    assert resolve_timezone(None) == "UTC"
    assert resolve_timezone("Europe/Rome") == "Europe/Rome"


def test_parse_instant_rejects_garbage_and_reads_naive_as_utc():
    assert parse_instant("not-a-date") is None
    assert parse_instant("") is None
    assert parse_instant("2026-06-18T18:00:00") == utc(2026, 6, 18, 18)
    assert parse_instant("2026-06-18T20:00:00+02:00") == utc(2026, 6, 18, 18)
    assert format_instant(utc(2026, 6, 18, 18)) == "2026-06-18T18:00:00Z"


def test_zoned_date_key_uses_tournament_zone():
    late_evening_utc = utc(2026, 6, 18, 23, 30)
    assert zoned_date_key(late_evening_utc, "UTC") == "2026-06-18"
    assert zoned_date_key(late_evening_utc, "Europe/Rome") == "2026-06-19"
    assert zoned_date_key(late_evening_utc, "America/New_York") == "2026-06-18"
    assert add_days_to_date_key("2026-06-30", 2) == "2026-07-02"


@pytest.mark.parametrize("tz", ZONES)
def test_saturday_only_valid_on_lock_date_plus_two(tz):
    lock_at = _local(tz, 2026, 6, 18)
    window = match_day_window(lock_at, tz, "saturday")
    assert window.lock_date == "2026-06-18"
    assert window.required_date == "2026-06-20"

    assert_scheduled_on_match_day(lock_at, tz, "saturday", _local(tz, 2026, 6, 20, 15))

    for wrong_day in (19, 21):
        with pytest.raises(DomainError) as exc:
            assert_scheduled_on_match_day(lock_at, tz, "saturday", _local(tz, 2026, 6, wrong_day, 15))
        assert exc.value.code == SCHEDULE_WINDOW_VIOLATION
        assert exc.value.details["expected_date"] == "2026-06-20"
        assert exc.value.details["scheduled_date"] == f"2026-06-{wrong_day}"


@pytest.mark.parametrize("tz", ["Europe/Rome", "America/New_York"])
def test_friday_insertion_window_is_lock_date_through_play_date(tz):
    lock_at = _local(tz, 2026, 6, 18)
    scheduled_at = _local(tz, 2026, 6, 19, 10)

    for allowed_day in (18, 19):
        today = datetime(2026, 6, allowed_day, 9, tzinfo=ZoneInfo(tz))
        assert_match_insertion_cadence(lock_at, tz, "friday", scheduled_at, today)

    for rejected_day in (17, 20):
        today = datetime(2026, 6, rejected_day, 9, tzinfo=ZoneInfo(tz))
        with pytest.raises(DomainError) as exc:
            assert_match_insertion_cadence(lock_at, tz, "friday", scheduled_at, today)
        assert exc.value.code == SCHEDULE_WINDOW_VIOLATION
        assert exc.value.details["window_start_date"] == "2026-06-18"
        assert exc.value.details["window_end_date"] == "2026-06-19"


def test_invalid_timestamps_are_schedule_violations():
    with pytest.raises(DomainError) as exc:
        assert_scheduled_on_match_day("soon", "UTC", "friday", "2026-06-19T10:00:00Z")
    assert exc.value.code == SCHEDULE_WINDOW_VIOLATION

    with pytest.raises(DomainError) as exc:
        assert_scheduled_on_match_day("2026-06-18T10:00:00Z", "UTC", "friday", "later")
    assert exc.value.code == SCHEDULE_WINDOW_VIOLATION
    assert exc.value.details == {"scheduled_at": "later"}


def test_unknown_zone_computes_dates_in_utc():
    lock_at = "2026-06-18T23:30:00Z"
    window = match_day_window(lock_at, "Nowhere/Special", "sunday")
    assert window.timezone == "UTC"
    assert window.lock_date == "2026-06-18"
    assert window.required_date == "2026-06-21"
