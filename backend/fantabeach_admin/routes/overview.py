from datetime import datetime

from fastapi import APIRouter, Depends

from fantabeach_admin.clock import get_now
from fantabeach_admin.dependencies import get_current_user_id, sync_lock_state
from fantabeach_admin.models.match import FINISHED_STATUSES, STATUS_LIVE, STATUS_SCHEDULED
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import OverviewResponse

router = APIRouter()

ACTIVE_TOURNAMENT_STATUSES = ("open", "entry_locked", "live")


@router.get("/overview", response_model=OverviewResponse)
def get_overview(
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> OverviewResponse:
    """Dashboard KPIs."""
    sync_lock_state(repo, now)
    tournaments = repo.list_tournaments()
    matches = repo.list_matches()
    return OverviewResponse(
        active_tournaments=sum(1 for t in tournaments if t.status in ACTIVE_TOURNAMENT_STATUSES),
        locked_entry_lists=sum(1 for t in tournaments if t.entry_list_locked),
        pending_matches=sum(1 for m in matches if m.status in (STATUS_SCHEDULED, STATUS_LIVE)),
        completed_matches=sum(1 for m in matches if m.status in FINISHED_STATUSES),
        scoring_runs=len(repo.list_scoring_runs()),
        failed_payment_events=sum(1 for e in repo.list_payment_events() if e.status == "rejected"),
    )
