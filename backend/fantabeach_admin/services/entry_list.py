"""
Entry list normalization and integrity checks.

Reserve pairs carry a dense 1..N reserve_order (1 = first to be called up).
Explicit orders win; pairs without one queue behind them, higher ranking
first. Normalizing an already-normalized list changes nothing.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from fantabeach_admin.errors import bad_request
from fantabeach_admin.models.entry_list_item import ENTRY_STATUSES, EntryListItem
from fantabeach_admin.models.player import Player
from fantabeach_admin.models.tournament import Tournament

RESERVE = "reserve"


@dataclass
class EntryDraft:
    """Storage-free view of one entry list item."""

    pair_id: str
    player_ids: Tuple[int, int]
    ranking: int
    entry_status: str
    tournament_id: int
    pair_tournament_id: int
    seed: int = 0
    pair_status: str = "pool"
    coach: Optional[str] = None
    reserve_order: Optional[int] = None
    id: Optional[int] = None


def normalize(items: Iterable[EntryDraft]) -> List[EntryDraft]:
    drafts = [replace(item) for item in items]

    for item in drafts:
        item.pair_status = item.entry_status
        if item.entry_status != RESERVE:
            item.reserve_order = None

    reserves = sorted(
        (item for item in drafts if item.entry_status == RESERVE),
        key=lambda item: (
            item.reserve_order if item.reserve_order is not None else math.inf,
            -item.ranking,
        ),
    )
    for index, item in enumerate(reserves, start=1):
        item.reserve_order = index

    return drafts


def assert_entry_list_shape(items: List[EntryDraft]) -> None:
    """Reject duplicate pairs, repeated players and unknown statuses."""
    seen_pairs = set()
    seen_players: Dict[int, str] = {}
    for item in items:
        if item.entry_status not in ENTRY_STATUSES:
            raise bad_request("Unknown entry status", {"pair_id": item.pair_id, "entry_status": item.entry_status})
        if not item.pair_id or not item.pair_id.strip():
            raise bad_request("Pair id is required", {"pair_id": item.pair_id})
        if item.pair_id in seen_pairs:
            raise bad_request("Duplicate pair in entry list", {"pair_id": item.pair_id})
        seen_pairs.add(item.pair_id)

        player_a, player_b = item.player_ids
        if player_a == player_b:
            raise bad_request("A pair needs two different players", {"pair_id": item.pair_id, "player_id": player_a})
        for player_id in item.player_ids:
            if player_id in seen_players:
                raise bad_request(
                    "Player appears in more than one pair",
                    {"player_id": player_id, "pair_ids": [seen_players[player_id], item.pair_id]},
                )
            seen_players[player_id] = item.pair_id


def assert_gender_integrity(
    tournament: Tournament,
    items: List[EntryDraft],
    players_by_id: Dict[int, Player],
) -> None:
    """Every item belongs to the tournament and fields only players of its gender."""
    for item in items:
        if item.tournament_id != tournament.id or item.pair_tournament_id != tournament.id:
            raise bad_request(
                "Entry item must belong to the target tournament",
                {"pair_id": item.pair_id, "tournament_id": tournament.id},
            )

        players = [players_by_id.get(player_id) for player_id in item.player_ids]
        if any(player is None for player in players):
            missing = [pid for pid, player in zip(item.player_ids, players) if player is None]
            raise bad_request("Entry List contains an unknown player", {"pair_id": item.pair_id, "player_ids": missing})

        if any(player.gender != tournament.gender for player in players):
            raise bad_request(
                "Gender separation rule violation",
                {"tournament_gender": tournament.gender, "pair_id": item.pair_id},
            )


def draft_from_row(row: EntryListItem) -> EntryDraft:
    return EntryDraft(
        id=row.id,
        pair_id=row.pair_id,
        player_ids=(row.player_a_id, row.player_b_id),
        ranking=row.ranking,
        entry_status=row.entry_status,
        tournament_id=row.tournament_id,
        pair_tournament_id=row.tournament_id,
        seed=row.seed,
        pair_status=row.pair_status,
        coach=row.coach,
        reserve_order=row.reserve_order,
    )


def apply_draft(row: EntryListItem, draft: EntryDraft, position: int) -> EntryListItem:
    row.tournament_id = draft.tournament_id
    row.position = position
    row.pair_id = draft.pair_id
    row.player_a_id, row.player_b_id = draft.player_ids
    row.seed = draft.seed
    row.pair_status = draft.pair_status
    row.coach = draft.coach
    row.ranking = draft.ranking
    row.entry_status = draft.entry_status
    row.reserve_order = draft.reserve_order
    return row


def row_from_draft(draft: EntryDraft, position: int) -> EntryListItem:
    player_a, player_b = draft.player_ids
    return EntryListItem(
        tournament_id=draft.tournament_id,
        position=position,
        pair_id=draft.pair_id,
        player_a_id=player_a,
        player_b_id=player_b,
        seed=draft.seed,
        pair_status=draft.pair_status,
        coach=draft.coach,
        ranking=draft.ranking,
        entry_status=draft.entry_status,
        reserve_order=draft.reserve_order,
    )
