from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id
from fantabeach_admin.errors import not_found
from fantabeach_admin.models.season import Season
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import Paginated, SeasonResponse, season_snapshot
from fantabeach_admin.services import audit
from fantabeach_admin.services.guards import season_guard
from fantabeach_admin.services.pagination import DEFAULT_PAGE_SIZE, paginate

router = APIRouter()

SEASON_STATUSES = ("upcoming", "active", "closed")


class SeasonCreate(BaseModel):
    year: int
    name: str

    @field_validator("year")
    @classmethod
    def validate_year(cls, v):
        if v < 2020:
            raise ValueError("year must be 2020 or later")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or len(v.strip()) < 3:
            raise ValueError("name must be at least 3 characters")
        return v.strip()


class SeasonUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 3:
            raise ValueError("name must be at least 3 characters")
        return v.strip() if v is not None else v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in SEASON_STATUSES:
            raise ValueError(f"status must be one of {', '.join(SEASON_STATUSES)}")
        return v


@router.get("/seasons", response_model=Paginated[SeasonResponse])
def list_seasons(
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
):
    items, page, page_size, total = paginate(repo.list_seasons(), page, page_size)
    return Paginated[SeasonResponse](
        items=[SeasonResponse.model_validate(s) for s in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.post("/seasons", response_model=SeasonResponse, status_code=201)
def create_season(
    payload: SeasonCreate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> SeasonResponse:
    stamp = storage_timestamp(now)
    season = Season(year=payload.year, name=payload.name, status="upcoming", created_at=stamp, updated_at=stamp)
    repo.add(season)
    repo.flush()

    audit.record(repo, user_id, "season.create", "season", season.id, now, after=season_snapshot(season))
    repo.commit()
    return SeasonResponse.model_validate(season)


@router.patch("/seasons/{season_id}", response_model=SeasonResponse)
def update_season(
    season_id: int,
    payload: SeasonUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> SeasonResponse:
    with season_guard(season_id):
        season = repo.get(Season, season_id)
        if season is None:
            raise not_found("Season")

        before = season_snapshot(season)
        if payload.name is not None:
            season.name = payload.name
        if payload.status is not None:
            season.status = payload.status
        season.updated_at = storage_timestamp(now)
        repo.add(season)

        audit.record(repo, user_id, "season.update", "season", season.id, now, before=before, after=season_snapshot(season))
        repo.commit()
        return SeasonResponse.model_validate(season)
