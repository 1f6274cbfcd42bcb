import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, load_tournament, sync_lock_state
from fantabeach_admin.errors import not_found
from fantabeach_admin.models.scoring import ScoringConfig, ScoringRun
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import (
    ScoringConfigResponse,
    ScoringRunResponse,
    scoring_config_snapshot,
    scoring_run_snapshot,
)
from fantabeach_admin.services import audit
from fantabeach_admin.services.guards import season_guard, tournament_guard
from fantabeach_admin.services.leaderboard import refresh_league
from fantabeach_admin.services.scoring_engine import compute_tournament_totals, pair_to_players

logger = logging.getLogger(__name__)

router = APIRouter()


class ScoringConfigUpdate(BaseModel):
    base_point_multiplier: Optional[int] = None
    bonus_win_20: Optional[int] = None
    bonus_win_21: Optional[int] = None

    @field_validator("base_point_multiplier", "bonus_win_20", "bonus_win_21")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("must be >= 0")
        return v


def _load_config(repo: AdminRepository, tournament_id: int) -> ScoringConfig:
    config = repo.get(ScoringConfig, tournament_id)
    if config is None:
        raise not_found("Scoring config")
    return config


@router.get("/tournaments/{tournament_id}/scoring/config", response_model=ScoringConfigResponse)
def get_scoring_config(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> ScoringConfigResponse:
    sync_lock_state(repo, now)
    return ScoringConfigResponse.model_validate(_load_config(repo, tournament_id))


@router.put("/tournaments/{tournament_id}/scoring/config", response_model=ScoringConfigResponse)
def update_scoring_config(
    tournament_id: int,
    payload: ScoringConfigUpdate,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> ScoringConfigResponse:
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        config = _load_config(repo, tournament_id)
        before = scoring_config_snapshot(config)

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(config, field, value)
        config.updated_at = storage_timestamp(now)
        repo.add(config)

        audit.record(
            repo, user_id, "scoring.config.update", "scoring_config", tournament_id, now,
            before=before, after=scoring_config_snapshot(config),
        )
        repo.commit()
        return ScoringConfigResponse.model_validate(config)


@router.post("/tournaments/{tournament_id}/scoring/recalculate", response_model=ScoringRunResponse)
def recalculate_scoring(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> ScoringRunResponse:
    """Append a new scoring run and refresh every league of the tournament's season."""
    with tournament_guard(tournament_id):
        sync_lock_state(repo, now)
        tournament = load_tournament(repo, tournament_id)
        with season_guard(tournament.season_id):
            config = _load_config(repo, tournament_id)

            registrations = {r.user_id: r.registered_at for r in repo.list_registrations(tournament_id)}
            started_at = storage_timestamp(now)
            totals = compute_tournament_totals(
                tournament,
                repo.list_teams(tournament_id),
                repo.list_matches(tournament_id),
                pair_to_players(repo.list_entry_items(tournament_id)),
                config,
                registrations,
            )

            run = ScoringRun(
                tournament_id=tournament_id,
                status="completed",
                triggered_by=str(user_id),
                started_at=started_at,
                finished_at=storage_timestamp(now),
                totals_by_user=totals,
            )
            repo.add(run)
            repo.flush()
            logger.info("Scoring run %s for tournament %s: %d team total(s)", run.id, tournament_id, len(totals))

            for league in repo.list_leagues(season_id=tournament.season_id):
                refresh_league(repo, league, now)

            audit.record(
                repo, user_id, "scoring.recalculate", "tournament", tournament_id, now,
                after=scoring_run_snapshot(run),
            )
            repo.commit()
            return ScoringRunResponse.model_validate(run)


@router.get("/tournaments/{tournament_id}/scoring/runs", response_model=List[ScoringRunResponse])
def list_scoring_runs(
    tournament_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[ScoringRunResponse]:
    sync_lock_state(repo, now)
    load_tournament(repo, tournament_id)
    return [ScoringRunResponse.model_validate(run) for run in repo.list_scoring_runs(tournament_id)]
