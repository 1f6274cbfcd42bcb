"""
Lineup lock scheduler.

Lock transitions are time-driven, not event-driven: nothing fires when the
lock instant passes. Instead `tick` is invoked at the start of every
tournament-scoped read or write and applies whatever transitions are due.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fantabeach_admin.clock import as_utc, storage_timestamp
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.schemas import tournament_snapshot
from fantabeach_admin.services import audit
from fantabeach_admin.services.guards import lock_sync_guard
from fantabeach_admin.services.timezones import parse_instant

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def lock_instant(tournament: Tournament) -> Optional[datetime]:
    return parse_instant(tournament.lineup_lock_at)


def is_lock_time_passed(tournament: Tournament, reference: datetime) -> bool:
    """True iff the policy lock instant parses and `reference` is at or after it."""
    lock_at = lock_instant(tournament)
    if lock_at is None:
        return False
    return as_utc(reference) >= lock_at


def is_fully_locked(tournament: Tournament) -> bool:
    return tournament.entry_list_locked and tournament.lineup_locked


def sync_locks(tournaments: List[Tournament], now: datetime) -> List[Tournament]:
    """Lock every due tournament that is not yet fully locked.

    Sets entry_list_locked and lineup_locked together and bumps updated_at.
    Returns the tournaments that changed; a second pass returns [].
    """
    changed: List[Tournament] = []
    for tournament in tournaments:
        if is_fully_locked(tournament):
            continue
        if not is_lock_time_passed(tournament, now):
            continue
        tournament.entry_list_locked = True
        tournament.lineup_locked = True
        tournament.updated_at = storage_timestamp(now)
        changed.append(tournament)
    return changed


def tick(repo, now: datetime) -> List[Tournament]:
    """Apply due lock transitions through the repository and audit each one."""
    with lock_sync_guard():
        candidates = repo.list_unlocked_tournaments()
        before = {t.id: tournament_snapshot(t) for t in candidates}
        changed = sync_locks(candidates, now)
        for tournament in changed:
            repo.add(tournament)
            logger.info("Tournament %s passed lineup lock (%s); entry list and lineup locked", tournament.id, tournament.lineup_lock_at)
            audit.record(
                repo,
                actor_user_id=SYSTEM_ACTOR,
                action="tournament.lock.sync",
                entity_type="tournament",
                entity_id=tournament.id,
                before=before[tournament.id],
                after=tournament_snapshot(tournament),
                now=now,
            )
        if changed:
            repo.flush()
    return changed
