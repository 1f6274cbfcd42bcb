"""
Tournament lineup policy and lifecycle checks.
"""
from typing import Optional

from fantabeach_admin.errors import bad_request
from fantabeach_admin.models.tournament import TOURNAMENT_STATUSES
from fantabeach_admin.services.timezones import parse_instant

MIN_ROSTER_SIZE = 1
MIN_STARTER_COUNT = 1
MIN_RESERVE_COUNT = 0


def validate_policy(
    roster_size: int,
    starter_count: int,
    reserve_count: int,
    lineup_lock_at: str,
    timezone: Optional[str],
) -> None:
    if roster_size < MIN_ROSTER_SIZE:
        raise bad_request("Roster size must be at least 1", {"roster_size": roster_size})
    if starter_count < MIN_STARTER_COUNT:
        raise bad_request("Starter count must be at least 1", {"starter_count": starter_count})
    if reserve_count < MIN_RESERVE_COUNT:
        raise bad_request("Reserve count must be 0 or greater", {"reserve_count": reserve_count})
    if starter_count + reserve_count > roster_size:
        raise bad_request(
            "Starter and reserve counts cannot exceed roster size",
            {
                "roster_size": roster_size,
                "starter_count": starter_count,
                "reserve_count": reserve_count,
            },
        )
    if not timezone or not timezone.strip():
        raise bad_request("Time zone is required", {"timezone": timezone})
    if parse_instant(lineup_lock_at) is None:
        raise bad_request("Lineup lock timestamp is invalid", {"lineup_lock_at": lineup_lock_at})


def assert_status_transition(current: str, new: str, override: bool = False) -> None:
    """Statuses only move forward along the lifecycle unless `override` is set."""
    if new not in TOURNAMENT_STATUSES:
        raise bad_request("Unknown tournament status", {"status": new, "allowed": list(TOURNAMENT_STATUSES)})
    if override or new == current:
        return
    if current in TOURNAMENT_STATUSES and TOURNAMENT_STATUSES.index(new) < TOURNAMENT_STATUSES.index(current):
        raise bad_request(
            "Tournament status cannot move backwards without an override",
            {"current_status": current, "status": new},
        )
