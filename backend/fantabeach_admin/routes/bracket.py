from datetime import datetime

from fastapi import APIRouter, Depends

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, load_tournament, sync_lock_state
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import BracketData
from fantabeach_admin.services import audit, bracket_builder
from fantabeach_admin.services.guards import tournament_guard

router = APIRouter()


@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketData)
def get_bracket(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> BracketData:
    """Bracket projection computed from the tournament's current matches."""
    sync_lock_state(repo, now)
    tournament = load_tournament(repo, tournament_id)
    bracket = bracket_builder.build(tournament_id, repo.list_matches(tournament_id))
    bracket.generated_at = tournament.bracket_generated_at
    return bracket


@router.post("/tournaments/{tournament_id}/bracket/rebuild", response_model=BracketData)
@router.post("/tournaments/{tournament_id}/regenerate-bracket", response_model=BracketData)
def rebuild_bracket(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> BracketData:
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)

        tournament.bracket_generated_at = storage_timestamp(now)
        repo.add(tournament)
        bracket = bracket_builder.build(tournament_id, repo.list_matches(tournament_id))
        bracket.generated_at = tournament.bracket_generated_at

        audit.record(
            repo, user_id, "tournament.bracket.regenerate", "tournament", tournament_id, now,
            after=bracket.model_dump(mode="json"),
        )
        repo.commit()
        return bracket
