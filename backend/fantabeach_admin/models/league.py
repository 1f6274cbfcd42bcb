from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel

from fantabeach_admin.clock import naive_utc_now

DEFAULT_TIE_BREAKERS = ["highest_player_score", "match_dominance"]


class League(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    name: str
    mode: str  # "overall" | "head_to_head"
    status: str = Field(default="active")  # "active" | "paused" | "completed"
    tie_breakers: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TIE_BREAKERS), sa_column=Column(JSON, nullable=False)
    )
    updated_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)


class LeaderboardRow(SQLModel, table=True):
    """Derived row; the whole set for a league is replaced on every recompute."""

    __tablename__ = "leaderboard_row"

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    user_id: int
    display_name: str
    rank: int
    total_points: int
    tie_breaker_score: int
    last_updated: datetime = Field(sa_type=DateTime)
