from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel

from fantabeach_admin.clock import naive_utc_now

DEFAULT_BASE_POINT_MULTIPLIER = 1
DEFAULT_BONUS_WIN_20 = 6
DEFAULT_BONUS_WIN_21 = 3


class ScoringConfig(SQLModel, table=True):
    __tablename__ = "scoring_config"

    tournament_id: int = Field(foreign_key="tournament.id", primary_key=True)
    base_point_multiplier: int = Field(default=DEFAULT_BASE_POINT_MULTIPLIER)
    bonus_win_20: int = Field(default=DEFAULT_BONUS_WIN_20)
    bonus_win_21: int = Field(default=DEFAULT_BONUS_WIN_21)
    updated_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)


class ScoringRun(SQLModel, table=True):
    """One immutable scoring computation. Never updated after insert."""

    __tablename__ = "scoring_run"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    status: str = Field(default="completed")  # "running" | "completed" | "failed"
    triggered_by: str
    started_at: datetime = Field(sa_type=DateTime)
    finished_at: datetime = Field(sa_type=DateTime)
    # [{"user_id": 7, "total_points": 120, "counted_players": [..], "player_points": {..}}, ...]
    totals_by_user: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
