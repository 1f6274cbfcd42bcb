"""
Match runtime: insertion, status/score edits, completion and correction.

Completing (or correcting) a match runs bracket progression, which fills or
creates the successor matches that depend on the result.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, load_tournament, sync_lock_state
from fantabeach_admin.errors import bad_request, not_found
from fantabeach_admin.models.match import (
    DAY_BUCKETS,
    FINISHED_STATUSES,
    PHASES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CORRECTED,
    STATUS_LIVE,
    STATUS_SCHEDULED,
    Match,
    is_placeholder_pair_id,
)
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import BracketData, MatchResponse, match_snapshot
from fantabeach_admin.services import audit, bracket_builder
from fantabeach_admin.services.cadence import assert_match_insertion_cadence, assert_scheduled_on_match_day
from fantabeach_admin.services.guards import tournament_guard
from fantabeach_admin.services.lock_scheduler import is_lock_time_passed
from fantabeach_admin.services.progression import advance_progression
from fantabeach_admin.services.set_scores import compute_winner, normalize_set_scores
from fantabeach_admin.services.timezones import format_instant

logger = logging.getLogger(__name__)

router = APIRouter()

# Status edits allowed through PATCH; completion has its own endpoint
ALLOWED_STATUS_TRANSITIONS = {
    STATUS_SCHEDULED: (STATUS_LIVE, STATUS_CANCELLED),
    STATUS_LIVE: (STATUS_CANCELLED,),
}


class SetScoreInput(BaseModel):
    set_number: Optional[int] = None
    pair_a_score: int
    pair_b_score: int


class MatchCreate(BaseModel):
    phase: str
    day: str
    round: int
    slot: int
    pair_a_id: str
    pair_b_id: str
    scheduled_at: str
    best_of: int = 3

    @field_validator("phase")
    @classmethod
    def validate_phase(cls, v):
        if v not in PHASES:
            raise ValueError(f"phase must be one of {', '.join(PHASES)}")
        return v

    @field_validator("day")
    @classmethod
    def validate_day(cls, v):
        if v not in DAY_BUCKETS:
            raise ValueError(f"day must be one of {', '.join(DAY_BUCKETS)}")
        return v

    @field_validator("round", "slot")
    @classmethod
    def validate_position(cls, v):
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("best_of")
    @classmethod
    def validate_best_of(cls, v):
        if v < 1 or v % 2 == 0:
            raise ValueError("best_of must be a positive odd number")
        return v


class MatchUpdate(BaseModel):
    status: Optional[str] = None
    set_scores: Optional[List[SetScoreInput]] = None
    scheduled_at: Optional[str] = None
    day: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in (STATUS_SCHEDULED, STATUS_LIVE, STATUS_CANCELLED):
            raise ValueError("status must be scheduled, live or cancelled")
        return v

    @field_validator("day")
    @classmethod
    def validate_day(cls, v):
        if v is not None and v not in DAY_BUCKETS:
            raise ValueError(f"day must be one of {', '.join(DAY_BUCKETS)}")
        return v


class MatchResult(BaseModel):
    set_scores: List[SetScoreInput]


class MatchResultResponse(BaseModel):
    match: MatchResponse
    progressed: List[MatchResponse]
    bracket: BracketData


def _set_score_dicts(set_scores: List[SetScoreInput]) -> List[Dict[str, Any]]:
    return [s.model_dump() for s in set_scores]


def _load_match(repo: AdminRepository, match_id: int) -> Match:
    match = repo.get(Match, match_id)
    if match is None:
        raise not_found("Match")
    return match


def _assert_pair_known(pair_id: str, known: set, field: str) -> None:
    if is_placeholder_pair_id(pair_id):
        return
    if pair_id not in known:
        raise bad_request("Match references unknown pair", {field: pair_id})


def _record_result(
    repo: AdminRepository,
    tournament: Tournament,
    match: Match,
    set_scores: List[Dict[str, Any]],
    status: str,
    action: str,
    user_id: int,
    now: datetime,
) -> MatchResultResponse:
    """Score `match`, run progression and audit each effect.

    Preconditions are all checked before the first write.
    """
    normalized = normalize_set_scores(set_scores, match.best_of)
    winner = compute_winner(normalized, match.pair_a_id, match.pair_b_id, match.best_of)
    if not winner:
        raise bad_request(
            "Cannot complete match without a winner",
            {"best_of": match.best_of, "set_scores": normalized},
        )

    before = match_snapshot(match)
    match.set_scores = normalized
    match.winner_pair_id = winner
    match.status = status
    if match.completed_at is None:
        match.completed_at = storage_timestamp(now)
    repo.add(match)

    result = advance_progression(repo.list_matches(tournament.id), match, now)
    for change in result.changes:
        repo.add(change.match)
    repo.flush()

    for change in result.changes:
        audit.record(
            repo, user_id, f"match.progression.{change.action}", "match", change.match.id, now,
            before=change.before, after=match_snapshot(change.match),
        )
    audit.record(repo, user_id, action, "match", match.id, now, before=before, after=match_snapshot(match))

    bracket = bracket_builder.build(tournament.id, result.matches)
    bracket.generated_at = tournament.bracket_generated_at
    logger.info(
        "Match %s %s: winner %s, %d successor change(s), bracket has %d node(s)",
        match.id, status, winner, len(result.changes), len(bracket.nodes),
    )
    repo.commit()

    return MatchResultResponse(
        match=MatchResponse.model_validate(match),
        progressed=[MatchResponse.model_validate(change.match) for change in result.changes],
        bracket=bracket,
    )


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[MatchResponse]:
    sync_lock_state(repo, now)
    load_tournament(repo, tournament_id)
    return [MatchResponse.model_validate(m) for m in repo.list_matches(tournament_id)]


@router.post("/tournaments/{tournament_id}/matches", response_model=MatchResponse, status_code=201)
def create_match(
    tournament_id: int,
    payload: MatchCreate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> MatchResponse:
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)

        known_pairs = {item.pair_id for item in repo.list_entry_items(tournament_id)}
        _assert_pair_known(payload.pair_a_id, known_pairs, "pair_a_id")
        _assert_pair_known(payload.pair_b_id, known_pairs, "pair_b_id")
        if payload.pair_a_id == payload.pair_b_id and not is_placeholder_pair_id(payload.pair_a_id):
            raise bad_request("A pair cannot play itself", {"pair_a_id": payload.pair_a_id})

        for existing in repo.list_matches(tournament_id):
            if (existing.phase, existing.round, existing.slot) == (payload.phase, payload.round, payload.slot):
                raise bad_request(
                    "A match already occupies this bracket position",
                    {"phase": payload.phase, "round": payload.round, "slot": payload.slot, "match_id": existing.id},
                )

        scheduled = assert_match_insertion_cadence(
            tournament.lineup_lock_at, tournament.timezone, payload.day, payload.scheduled_at, now
        )

        match = Match(
            tournament_id=tournament_id,
            phase=payload.phase,
            day=payload.day,
            round=payload.round,
            slot=payload.slot,
            status=STATUS_SCHEDULED,
            best_of=payload.best_of,
            pair_a_id=payload.pair_a_id,
            pair_b_id=payload.pair_b_id,
            set_scores=[],
            scheduled_at=format_instant(scheduled),
        )
        repo.add(match)
        repo.flush()

        audit.record(repo, user_id, "match.create", "match", match.id, now, after=match_snapshot(match))
        repo.commit()
        return MatchResponse.model_validate(match)


@router.patch("/matches/{match_id}", response_model=MatchResponse)
def update_match(
    match_id: int,
    payload: MatchUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> MatchResponse:
    tournament_id = _load_match(repo, match_id).tournament_id
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        match = _load_match(repo, match_id)
        tournament = load_tournament(repo, tournament_id)

        if match.status in FINISHED_STATUSES:
            raise bad_request(
                "Completed match is immutable; submit a correction instead",
                {"match_id": match.id, "status": match.status},
            )

        if payload.status is not None and payload.status != match.status:
            if payload.status not in ALLOWED_STATUS_TRANSITIONS.get(match.status, ()):
                raise bad_request(
                    "Invalid match status transition",
                    {"current_status": match.status, "status": payload.status},
                )

        normalized_scores = None
        if payload.set_scores is not None:
            normalized_scores = normalize_set_scores(_set_score_dicts(payload.set_scores), match.best_of)

        day = payload.day or match.day
        scheduled_at = payload.scheduled_at or match.scheduled_at
        scheduled = None
        if payload.day is not None or payload.scheduled_at is not None:
            scheduled = assert_scheduled_on_match_day(tournament.lineup_lock_at, tournament.timezone, day, scheduled_at)

        before = match_snapshot(match)
        if payload.status is not None:
            match.status = payload.status
        if normalized_scores is not None:
            match.set_scores = normalized_scores
        if scheduled is not None:
            match.day = day
            match.scheduled_at = format_instant(scheduled)
        repo.add(match)

        audit.record(repo, user_id, "match.update", "match", match.id, now, before=before, after=match_snapshot(match))
        repo.commit()
        return MatchResponse.model_validate(match)


@router.post("/matches/{match_id}/complete", response_model=MatchResultResponse)
def complete_match(
    match_id: int,
    payload: MatchResult,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> MatchResultResponse:
    tournament_id = _load_match(repo, match_id).tournament_id
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        match = _load_match(repo, match_id)
        tournament = load_tournament(repo, tournament_id)

        if is_placeholder_pair_id(match.pair_a_id) or is_placeholder_pair_id(match.pair_b_id):
            raise bad_request(
                "Match pairings are incomplete",
                {"pair_a_id": match.pair_a_id, "pair_b_id": match.pair_b_id},
            )
        if match.status in FINISHED_STATUSES or match.status == STATUS_CANCELLED:
            raise bad_request("Match is already closed", {"match_id": match.id, "status": match.status})

        return _record_result(
            repo, tournament, match, _set_score_dicts(payload.set_scores),
            STATUS_COMPLETED, "match.complete", user_id, now,
        )


@router.post("/matches/{match_id}/correct", response_model=MatchResultResponse)
def correct_match(
    match_id: int,
    payload: MatchResult,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> MatchResultResponse:
    """Re-score a finished match. Finished matches freeze once the lock instant passes."""
    tournament_id = _load_match(repo, match_id).tournament_id
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        match = _load_match(repo, match_id)
        tournament = load_tournament(repo, tournament_id)

        if match.status not in FINISHED_STATUSES:
            raise bad_request("Only completed matches can be corrected", {"match_id": match.id, "status": match.status})
        if is_lock_time_passed(tournament, now):
            raise bad_request(
                "Lineup is locked and completed match is immutable",
                {"match_id": match.id, "lineup_lock_at": tournament.lineup_lock_at},
            )

        return _record_result(
            repo, tournament, match, _set_score_dicts(payload.set_scores),
            STATUS_CORRECTED, "match.correct", user_id, now,
        )
