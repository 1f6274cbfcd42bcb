from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, sync_lock_state
from fantabeach_admin.errors import bad_request, not_found
from fantabeach_admin.models.league import DEFAULT_TIE_BREAKERS, League
from fantabeach_admin.models.season import Season
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import (
    LeaderboardRowResponse,
    LeagueResponse,
    leaderboard_snapshot,
    league_snapshot,
)
from fantabeach_admin.services import audit
from fantabeach_admin.services.guards import season_guard
from fantabeach_admin.services.leaderboard import refresh_league, validate_tie_breakers

router = APIRouter()

LEAGUE_MODES = ("overall", "head_to_head")
LEAGUE_STATUSES = ("active", "paused", "completed")


def _check_mode(v):
    if v is not None and v not in LEAGUE_MODES:
        raise ValueError("mode must be 'overall' or 'head_to_head'")
    return v


class LeagueCreate(BaseModel):
    season_id: int
    name: str
    mode: str = "overall"
    tie_breakers: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or len(v.strip()) < 3:
            raise ValueError("name must be at least 3 characters")
        return v.strip()

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v):
        return _check_mode(v)


class LeagueUpdate(BaseModel):
    name: Optional[str] = None
    mode: Optional[str] = None
    status: Optional[str] = None
    tie_breakers: Optional[List[str]] = None

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v):
        return _check_mode(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in LEAGUE_STATUSES:
            raise ValueError(f"status must be one of {', '.join(LEAGUE_STATUSES)}")
        return v


def _load_league(repo: AdminRepository, league_id: int) -> League:
    league = repo.get(League, league_id)
    if league is None:
        raise not_found("League")
    return league


@router.get("/leagues", response_model=List[LeagueResponse])
def list_leagues(
    season_id: Optional[int] = Query(None),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[LeagueResponse]:
    sync_lock_state(repo, now)
    return [LeagueResponse.model_validate(league) for league in repo.list_leagues(season_id=season_id)]


@router.post("/leagues", response_model=LeagueResponse, status_code=201)
def create_league(
    payload: LeagueCreate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> LeagueResponse:
    with season_guard(payload.season_id):
        sync_lock_state(repo, now)
        if repo.get(Season, payload.season_id) is None:
            raise bad_request("Season does not exist", {"season_id": payload.season_id})

        tie_breakers = validate_tie_breakers(
            payload.tie_breakers if payload.tie_breakers is not None else DEFAULT_TIE_BREAKERS
        )
        league = League(
            season_id=payload.season_id,
            name=payload.name,
            mode=payload.mode,
            status="active",
            tie_breakers=tie_breakers,
            updated_at=storage_timestamp(now),
        )
        repo.add(league)
        repo.flush()
        refresh_league(repo, league, now)

        audit.record(repo, user_id, "league.create", "league", league.id, now, after=league_snapshot(league))
        repo.commit()
        return LeagueResponse.model_validate(league)


@router.patch("/leagues/{league_id}", response_model=LeagueResponse)
def update_league(
    league_id: int,
    payload: LeagueUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> LeagueResponse:
    season_id = _load_league(repo, league_id).season_id
    with season_guard(season_id):
        sync_lock_state(repo, now)
        league = _load_league(repo, league_id)
        before = league_snapshot(league)

        tie_breakers = None
        if payload.tie_breakers is not None:
            tie_breakers = validate_tie_breakers(payload.tie_breakers)
        if payload.name is not None and len(payload.name.strip()) < 3:
            raise bad_request("League name must be at least 3 characters", {"name": payload.name})

        if payload.name is not None:
            league.name = payload.name.strip()
        if payload.mode is not None:
            league.mode = payload.mode
        if payload.status is not None:
            league.status = payload.status
        rules_changed = tie_breakers is not None and tie_breakers != list(league.tie_breakers)
        if tie_breakers is not None:
            league.tie_breakers = tie_breakers
        league.updated_at = storage_timestamp(now)
        repo.add(league)

        if rules_changed:
            refresh_league(repo, league, now)

        audit.record(repo, user_id, "league.update", "league", league.id, now, before=before, after=league_snapshot(league))
        repo.commit()
        return LeagueResponse.model_validate(league)


@router.get("/leagues/{league_id}/leaderboard", response_model=List[LeaderboardRowResponse])
def get_leaderboard(
    league_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[LeaderboardRowResponse]:
    sync_lock_state(repo, now)
    _load_league(repo, league_id)
    return [LeaderboardRowResponse.model_validate(row) for row in repo.list_leaderboard_rows(league_id)]


@router.post("/leagues/{league_id}/recompute", response_model=List[LeaderboardRowResponse])
def recompute_league(
    league_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[LeaderboardRowResponse]:
    season_id = _load_league(repo, league_id).season_id
    with season_guard(season_id):
        sync_lock_state(repo, now)
        league = _load_league(repo, league_id)
        before = leaderboard_snapshot(repo.list_leaderboard_rows(league_id))
        rows = refresh_league(repo, league, now)

        audit.record(
            repo, user_id, "league.recompute", "league", league_id, now,
            before=before, after=leaderboard_snapshot(rows),
        )
        repo.commit()
        return [LeaderboardRowResponse.model_validate(row) for row in rows]
