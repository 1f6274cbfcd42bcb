"""Injected wall clock.

Every time-driven decision (lock transitions, cadence windows, session
expiry) reads "now" through `get_now` so tests can pin it.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_now() -> datetime:
    """FastAPI dependency: the current instant (aware, UTC)."""
    return utc_now()


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def storage_timestamp(now: datetime) -> datetime:
    """Naive UTC datetime, the form timestamps are persisted in."""
    return as_utc(now).replace(tzinfo=None)


def naive_utc_now() -> datetime:
    return storage_timestamp(utc_now())
