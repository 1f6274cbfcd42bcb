from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now
from fantabeach_admin.dependencies import get_current_user_id, load_tournament, sync_lock_state
from fantabeach_admin.errors import bad_request, not_found
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import (
    EntryListItemResponse,
    entry_item_snapshot,
    entry_item_to_response,
    entry_list_snapshot,
)
from fantabeach_admin.services import audit
from fantabeach_admin.services.entry_list import (
    RESERVE,
    EntryDraft,
    apply_draft,
    assert_entry_list_shape,
    assert_gender_integrity,
    draft_from_row,
    normalize,
    row_from_draft,
)
from fantabeach_admin.services.guards import tournament_guard

router = APIRouter()


class PairInput(BaseModel):
    id: str
    tournament_id: Optional[int] = None
    player_ids: List[int]
    seed: int = 0

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError("pair id is required")
        return v.strip()

    @field_validator("player_ids")
    @classmethod
    def validate_player_ids(cls, v):
        if len(v) != 2:
            raise ValueError("a pair has exactly two players")
        return v


class EntryListItemInput(BaseModel):
    tournament_id: Optional[int] = None
    pair: PairInput
    coach: Optional[str] = None
    ranking: int = 0
    entry_status: str
    reserve_order: Optional[int] = None


class EntryListReplace(BaseModel):
    items: List[EntryListItemInput]


class EntryListItemPatch(BaseModel):
    coach: Optional[str] = None
    ranking: Optional[int] = None
    entry_status: Optional[str] = None
    reserve_order: Optional[int] = None
    seed: Optional[int] = None


def _assert_entry_list_open(tournament: Tournament) -> None:
    if tournament.entry_list_locked:
        raise bad_request("Entry List is locked", {"tournament_id": tournament.id})


def _draft_from_input(tournament_id: int, item: EntryListItemInput) -> EntryDraft:
    return EntryDraft(
        pair_id=item.pair.id,
        player_ids=(item.pair.player_ids[0], item.pair.player_ids[1]),
        ranking=item.ranking,
        entry_status=item.entry_status,
        tournament_id=item.tournament_id if item.tournament_id is not None else tournament_id,
        pair_tournament_id=item.pair.tournament_id if item.pair.tournament_id is not None else tournament_id,
        seed=item.pair.seed,
        coach=item.coach,
        reserve_order=item.reserve_order,
    )


def _validate_drafts(repo: AdminRepository, tournament: Tournament, drafts: List[EntryDraft]) -> None:
    assert_entry_list_shape(drafts)
    player_ids = [pid for draft in drafts for pid in draft.player_ids]
    assert_gender_integrity(tournament, drafts, repo.players_by_ids(player_ids))


@router.get("/tournaments/{tournament_id}/entry-list", response_model=List[EntryListItemResponse])
def get_entry_list(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[EntryListItemResponse]:
    sync_lock_state(repo, now)
    load_tournament(repo, tournament_id)
    return [entry_item_to_response(item) for item in repo.list_entry_items(tournament_id)]


@router.put("/tournaments/{tournament_id}/entry-list", response_model=List[EntryListItemResponse])
def replace_entry_list(
    tournament_id: int,
    payload: EntryListReplace,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[EntryListItemResponse]:
    """Replace the whole entry list. All-or-nothing: any invalid item rejects the batch."""
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)
        _assert_entry_list_open(tournament)

        drafts = normalize(_draft_from_input(tournament_id, item) for item in payload.items)
        _validate_drafts(repo, tournament, drafts)

        before = entry_list_snapshot(repo.list_entry_items(tournament_id))
        rows = repo.replace_entry_items(
            tournament_id,
            [row_from_draft(draft, position) for position, draft in enumerate(drafts)],
        )

        audit.record(
            repo, user_id, "entry_list.replace", "entry_list", tournament_id, now,
            before=before, after=entry_list_snapshot(rows),
        )
        repo.commit()
        return [entry_item_to_response(row) for row in rows]


@router.patch(
    "/tournaments/{tournament_id}/entry-list/{item_id}",
    response_model=EntryListItemResponse,
)
def update_entry_list_item(
    tournament_id: int,
    item_id: int,
    payload: EntryListItemPatch,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> EntryListItemResponse:
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)
        _assert_entry_list_open(tournament)

        rows = repo.list_entry_items(tournament_id)
        target = next((row for row in rows if row.id == item_id), None)
        if target is None:
            raise not_found("Entry List item")

        before = entry_item_snapshot(target)
        changes = payload.model_dump(exclude_unset=True)
        drafts = [draft_from_row(row) for row in rows]
        draft = next(d for d in drafts if d.id == item_id)

        if "coach" in changes:
            draft.coach = changes["coach"]
        if changes.get("ranking") is not None:
            draft.ranking = changes["ranking"]
        if changes.get("seed") is not None:
            draft.seed = changes["seed"]
        if changes.get("entry_status") is not None:
            becoming_reserve = changes["entry_status"] == RESERVE and draft.entry_status != RESERVE
            draft.entry_status = changes["entry_status"]
            if becoming_reserve and changes.get("reserve_order") is None:
                # Newly demoted pairs queue behind the existing reserves
                draft.reserve_order = sum(1 for d in drafts if d.entry_status == RESERVE and d is not draft) + 1
        if changes.get("reserve_order") is not None:
            draft.reserve_order = changes["reserve_order"]

        normalized = normalize(drafts)
        _validate_drafts(repo, tournament, normalized)

        for position, (row, normalized_draft) in enumerate(zip(rows, normalized)):
            apply_draft(row, normalized_draft, position)
            repo.add(row)
        repo.flush()

        audit.record(
            repo, user_id, "entry_list.update", "entry_list_item", item_id, now,
            before=before, after=entry_item_snapshot(target),
        )
        repo.commit()
        return entry_item_to_response(target)
