from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator, model_validator

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, load_tournament, sync_lock_state
from fantabeach_admin.errors import ENTRY_LIST_LOCK_INVALID, ENTRY_LIST_NOT_FINAL, bad_request
from fantabeach_admin.models.scoring import ScoringConfig
from fantabeach_admin.models.season import Season
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import (
    TeamResponse,
    TournamentResponse,
    team_to_response,
    tournament_snapshot,
    tournament_to_response,
)
from fantabeach_admin.services import audit
from fantabeach_admin.services.guards import tournament_guard
from fantabeach_admin.services.lock_scheduler import is_lock_time_passed, lock_instant
from fantabeach_admin.services.timezones import resolve_timezone
from fantabeach_admin.services.tournament_policy import assert_status_transition, validate_policy

router = APIRouter()

GENDERS = ("men", "women")


class TournamentPolicyInput(BaseModel):
    roster_size: int
    starter_count: int
    reserve_count: int
    lineup_lock_at: str
    timezone: str
    no_retroactive_scoring: bool = True


class TournamentPolicyUpdate(BaseModel):
    roster_size: Optional[int] = None
    starter_count: Optional[int] = None
    reserve_count: Optional[int] = None
    lineup_lock_at: Optional[str] = None
    timezone: Optional[str] = None
    no_retroactive_scoring: Optional[bool] = None


class TournamentCreate(BaseModel):
    season_id: int
    name: str
    slug: str
    location: str
    gender: str
    is_public: bool = False
    start_date: date
    end_date: date
    policy: TournamentPolicyInput

    @field_validator("name", "slug", "location")
    @classmethod
    def validate_required_text(cls, v):
        if not v or not v.strip():
            raise ValueError("value is required")
        return v.strip()

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        if v not in GENDERS:
            raise ValueError("gender must be 'men' or 'women'")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    location: Optional[str] = None
    gender: Optional[str] = None
    is_public: Optional[bool] = None
    status: Optional[str] = None
    override_status: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    policy: Optional[TournamentPolicyUpdate] = None

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        if v is not None and v not in GENDERS:
            raise ValueError("gender must be 'men' or 'women'")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


def _assert_slug_available(repo: AdminRepository, slug: str, tournament_id: Optional[int] = None) -> None:
    existing = repo.get_tournament_by_slug(slug)
    if existing is not None and existing.id != tournament_id:
        raise bad_request("Tournament slug already in use", {"slug": slug})


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(
    season_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    gender: Optional[str] = Query(None),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[TournamentResponse]:
    sync_lock_state(repo, now)
    tournaments = repo.list_tournaments(season_id=season_id, status=status, gender=gender)
    return [tournament_to_response(t) for t in tournaments]


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(
    payload: TournamentCreate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> TournamentResponse:
    sync_lock_state(repo, now)

    if repo.get(Season, payload.season_id) is None:
        raise bad_request("Season does not exist", {"season_id": payload.season_id})
    _assert_slug_available(repo, payload.slug)

    policy = payload.policy
    validate_policy(policy.roster_size, policy.starter_count, policy.reserve_count, policy.lineup_lock_at, policy.timezone)

    stamp = storage_timestamp(now)
    tournament = Tournament(
        season_id=payload.season_id,
        name=payload.name,
        slug=payload.slug,
        location=payload.location,
        gender=payload.gender,
        is_public=payload.is_public,
        status="draft",
        start_date=payload.start_date,
        end_date=payload.end_date,
        roster_size=policy.roster_size,
        starter_count=policy.starter_count,
        reserve_count=policy.reserve_count,
        lineup_lock_at=policy.lineup_lock_at.strip(),
        timezone=resolve_timezone(policy.timezone),
        no_retroactive_scoring=policy.no_retroactive_scoring,
        created_at=stamp,
        updated_at=stamp,
    )
    repo.add(tournament)
    repo.flush()

    # Every tournament gets a scoring config with defaults
    repo.add(ScoringConfig(tournament_id=tournament.id, updated_at=stamp))

    audit.record(repo, user_id, "tournament.create", "tournament", tournament.id, now, after=tournament_snapshot(tournament))
    repo.commit()
    return tournament_to_response(tournament)


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> TournamentResponse:
    sync_lock_state(repo, now)
    return tournament_to_response(load_tournament(repo, tournament_id))


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(
    tournament_id: int,
    payload: TournamentUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> TournamentResponse:
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)
        before = tournament_snapshot(tournament)

        if payload.policy is not None and is_lock_time_passed(tournament, now):
            raise bad_request(
                "Lineup policy is immutable after lock",
                {"lineup_lock_at": tournament.lineup_lock_at},
            )

        if payload.status is not None:
            assert_status_transition(tournament.status, payload.status, payload.override_status)

        if payload.gender is not None and payload.gender != tournament.gender and repo.list_entry_items(tournament.id):
            raise bad_request(
                "Gender cannot change while the entry list has pairs",
                {"tournament_gender": tournament.gender, "gender": payload.gender},
            )

        if payload.slug is not None:
            _assert_slug_available(repo, payload.slug.strip(), tournament.id)

        start_date = payload.start_date or tournament.start_date
        end_date = payload.end_date or tournament.end_date
        if end_date < start_date:
            raise bad_request("end_date must be >= start_date", {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()})

        if payload.policy is not None:
            changes = payload.policy.model_dump(exclude_unset=True, exclude_none=True)
            merged = {
                "roster_size": tournament.roster_size,
                "starter_count": tournament.starter_count,
                "reserve_count": tournament.reserve_count,
                "lineup_lock_at": tournament.lineup_lock_at,
                "timezone": tournament.timezone,
            }
            merged.update({k: v for k, v in changes.items() if k in merged})
            validate_policy(**merged)

            tournament.roster_size = merged["roster_size"]
            tournament.starter_count = merged["starter_count"]
            tournament.reserve_count = merged["reserve_count"]
            tournament.lineup_lock_at = merged["lineup_lock_at"].strip()
            tournament.timezone = resolve_timezone(merged["timezone"])
            if "no_retroactive_scoring" in changes:
                tournament.no_retroactive_scoring = changes["no_retroactive_scoring"]

        for field in ("name", "slug", "location", "gender", "is_public", "status", "start_date", "end_date"):
            value = getattr(payload, field)
            if value is not None:
                setattr(tournament, field, value.strip() if isinstance(value, str) and field in ("name", "slug", "location") else value)

        tournament.updated_at = storage_timestamp(now)
        repo.add(tournament)

        audit.record(
            repo, user_id, "tournament.update", "tournament", tournament.id, now,
            before=before, after=tournament_snapshot(tournament),
        )
        repo.commit()
        return tournament_to_response(tournament)


@router.post("/tournaments/{tournament_id}/lock-entry-list", response_model=TournamentResponse)
def lock_entry_list(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> TournamentResponse:
    """Finalize the entry list. Only allowed once the lineup lock instant has passed."""
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)
        before = tournament_snapshot(tournament)

        if lock_instant(tournament) is None:
            raise bad_request(
                "Entry List lock timestamp is invalid",
                {"tournament_id": tournament.id, "lineup_lock_at": tournament.lineup_lock_at},
                ENTRY_LIST_LOCK_INVALID,
            )
        if not is_lock_time_passed(tournament, now):
            raise bad_request(
                "Entry List cannot be finalized before the configured lock time",
                {"lineup_lock_at": tournament.lineup_lock_at, "timezone": tournament.timezone},
                ENTRY_LIST_NOT_FINAL,
            )

        tournament.entry_list_locked = True
        if tournament.status in ("draft", "open"):
            tournament.status = "entry_locked"
        tournament.updated_at = storage_timestamp(now)
        repo.add(tournament)

        audit.record(
            repo, user_id, "tournament.entry_list.lock", "tournament", tournament.id, now,
            before=before, after=tournament_snapshot(tournament),
        )
        repo.commit()
        return tournament_to_response(tournament)


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def list_teams(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[TeamResponse]:
    sync_lock_state(repo, now)
    load_tournament(repo, tournament_id)
    return [team_to_response(team) for team in repo.list_teams(tournament_id)]
