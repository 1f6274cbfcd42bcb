from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now
from fantabeach_admin.dependencies import get_current_user_id
from fantabeach_admin.errors import not_found
from fantabeach_admin.models.player import Player
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import Paginated, PlayerResponse, player_snapshot
from fantabeach_admin.services import audit
from fantabeach_admin.services.pagination import DEFAULT_PAGE_SIZE, paginate

router = APIRouter()

GENDERS = ("men", "women")
PLAYER_STATUSES = ("active", "injured", "inactive")


def _check_gender(v):
    if v is not None and v not in GENDERS:
        raise ValueError("gender must be 'men' or 'women'")
    return v


def _check_status(v):
    if v is not None and v not in PLAYER_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PLAYER_STATUSES)}")
    return v


class PlayerCreate(BaseModel):
    first_name: str
    last_name: str
    gender: str
    country_code: str = ""
    rank_points: int = 0
    status: str = "active"

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        return _check_gender(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)

    @field_validator("country_code")
    @classmethod
    def validate_country_code(cls, v):
        return (v or "").strip().upper()


class PlayerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    country_code: Optional[str] = None
    rank_points: Optional[int] = None
    status: Optional[str] = None

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        return _check_gender(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


@router.get("/players", response_model=Paginated[PlayerResponse])
def list_players(
    gender: Optional[str] = Query(None),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
):
    items, page, page_size, total = paginate(repo.list_players(gender=gender), page, page_size)
    return Paginated[PlayerResponse](
        items=[PlayerResponse.model_validate(p) for p in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.post("/players", response_model=PlayerResponse, status_code=201)
def create_player(
    payload: PlayerCreate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> PlayerResponse:
    player = Player(**payload.model_dump())
    repo.add(player)
    repo.flush()

    audit.record(repo, user_id, "player.create", "player", player.id, now, after=player_snapshot(player))
    repo.commit()
    return PlayerResponse.model_validate(player)


@router.patch("/players/{player_id}", response_model=PlayerResponse)
def update_player(
    player_id: int,
    payload: PlayerUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> PlayerResponse:
    player = repo.get(Player, player_id)
    if player is None:
        raise not_found("Player")

    before = player_snapshot(player)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(player, field, value)
    repo.add(player)

    audit.record(repo, user_id, "player.update", "player", player.id, now, before=before, after=player_snapshot(player))
    repo.commit()
    return PlayerResponse.model_validate(player)
