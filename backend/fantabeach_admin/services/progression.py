"""
Bracket progression: when a match is finished, push its result into the
successor match(es) that depend on it.

Knockout phases (qualification, main_draw): the winner of round r slot s
fills round r+1 slot ceil(s/2), side A for odd s and side B for even s.

Pools: round-1 matches pair up (slots 2k-1 and 2k). Once both are finished,
round 2 gets a winners match (slot 2k-1) and a losers match (slot 2k).

Successors that are already finished are never touched. Re-running
progression for the same result changes nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from fantabeach_admin.models.match import (
    FINISHED_STATUSES,
    PLACEHOLDER_PAIR_ID,
    STATUS_CANCELLED,
    STATUS_SCHEDULED,
    Match,
)
from fantabeach_admin.schemas import match_snapshot
from fantabeach_admin.services.bracket_builder import KNOCKOUT_PHASES, knockout_successor, pool_successors
from fantabeach_admin.services.timezones import format_instant

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"


@dataclass
class ProgressionChange:
    action: str  # "created" | "updated"
    match: Match
    before: Optional[Dict[str, Any]] = None


@dataclass
class ProgressionResult:
    matches: List[Match]
    changes: List[ProgressionChange] = field(default_factory=list)


def loser_pair_id(match: Match) -> Optional[str]:
    if not match.winner_pair_id:
        return None
    if match.winner_pair_id == match.pair_a_id:
        return match.pair_b_id
    if match.winner_pair_id == match.pair_b_id:
        return match.pair_a_id
    return None


def _find(matches: List[Match], tournament_id: int, phase: str, round_: int, slot: int) -> Optional[Match]:
    for match in matches:
        if (
            match.tournament_id == tournament_id
            and match.phase == phase
            and match.round == round_
            and match.slot == slot
        ):
            return match
    return None


def _successor_scheduled_at(source: Match, now: datetime) -> str:
    if source.completed_at is not None:
        return format_instant(source.completed_at)
    return source.scheduled_at or format_instant(now)


def _upsert(
    matches: List[Match],
    changes: List[ProgressionChange],
    source: Match,
    round_: int,
    slot: int,
    now: datetime,
    pair_a_id: Optional[str] = None,
    pair_b_id: Optional[str] = None,
) -> None:
    existing = _find(matches, source.tournament_id, source.phase, round_, slot)

    if existing is None:
        created = Match(
            tournament_id=source.tournament_id,
            phase=source.phase,
            day=source.day,
            round=round_,
            slot=slot,
            status=STATUS_SCHEDULED,
            best_of=source.best_of,
            pair_a_id=pair_a_id or PLACEHOLDER_PAIR_ID,
            pair_b_id=pair_b_id or PLACEHOLDER_PAIR_ID,
            set_scores=[],
            scheduled_at=_successor_scheduled_at(source, now),
        )
        matches.append(created)
        changes.append(ProgressionChange(action=ACTION_CREATED, match=created))
        return

    if existing.status in FINISHED_STATUSES or existing.status == STATUS_CANCELLED:
        return

    needs_a = pair_a_id is not None and existing.pair_a_id != pair_a_id
    needs_b = pair_b_id is not None and existing.pair_b_id != pair_b_id
    if not needs_a and not needs_b:
        return

    before = match_snapshot(existing)
    if needs_a:
        existing.pair_a_id = pair_a_id
    if needs_b:
        existing.pair_b_id = pair_b_id
    changes.append(ProgressionChange(action=ACTION_UPDATED, match=existing, before=before))


def advance_knockout_winner(matches: List[Match], completed: Match, now: datetime, changes: List[ProgressionChange]) -> None:
    if not completed.winner_pair_id or completed.phase not in KNOCKOUT_PHASES:
        return
    next_slot, side = knockout_successor(completed.slot)
    _upsert(
        matches,
        changes,
        completed,
        completed.round + 1,
        next_slot,
        now,
        pair_a_id=completed.winner_pair_id if side == "A" else None,
        pair_b_id=completed.winner_pair_id if side == "B" else None,
    )


def advance_pools(matches: List[Match], completed: Match, now: datetime, changes: List[ProgressionChange]) -> None:
    if completed.phase != "pools" or completed.round != 1:
        return

    winners_slot, losers_slot, _ = pool_successors(completed.slot)
    first = _find(matches, completed.tournament_id, "pools", 1, winners_slot)
    second = _find(matches, completed.tournament_id, "pools", 1, winners_slot + 1)
    if first is None or second is None:
        return
    if first.status not in FINISHED_STATUSES or second.status not in FINISHED_STATUSES:
        return
    if not first.winner_pair_id or not second.winner_pair_id:
        return

    first_loser = loser_pair_id(first)
    second_loser = loser_pair_id(second)
    if not first_loser or not second_loser:
        return

    _upsert(
        matches, changes, completed, 2, winners_slot, now,
        pair_a_id=first.winner_pair_id, pair_b_id=second.winner_pair_id,
    )
    _upsert(
        matches, changes, completed, 2, losers_slot, now,
        pair_a_id=first_loser, pair_b_id=second_loser,
    )


def advance_progression(matches: List[Match], completed: Match, now: datetime) -> ProgressionResult:
    """Resolve or create the successor matches of `completed`.

    Successor matches are updated in place; new ones are appended to the
    returned list (they have no id until persisted).
    """
    result = ProgressionResult(matches=list(matches))
    advance_knockout_winner(result.matches, completed, now, result.changes)
    advance_pools(result.matches, completed, now, result.changes)
    logger.info(
        "Progression for match %s (%s R%s M%s): %d change(s)",
        completed.id, completed.phase, completed.round, completed.slot, len(result.changes),
    )
    return result
