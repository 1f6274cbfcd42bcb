from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel

PLACEHOLDER_PAIR_ID = "__TBD__"

PHASES = ("qualification", "pools", "main_draw")
DAY_BUCKETS = ("friday", "saturday", "sunday")

STATUS_SCHEDULED = "scheduled"
STATUS_LIVE = "live"
STATUS_COMPLETED = "completed"
STATUS_CORRECTED = "corrected"
STATUS_CANCELLED = "cancelled"

FINISHED_STATUSES = (STATUS_COMPLETED, STATUS_CORRECTED)


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: str  # "qualification" | "pools" | "main_draw"
    day: str  # "friday" | "saturday" | "sunday"
    round: int
    slot: int
    status: str = Field(default=STATUS_SCHEDULED)
    best_of: int = Field(default=3)

    # Pair references; PLACEHOLDER_PAIR_ID until upstream progression resolves them
    pair_a_id: str = Field(default=PLACEHOLDER_PAIR_ID)
    pair_b_id: str = Field(default=PLACEHOLDER_PAIR_ID)

    # [{"set_number": 1, "pair_a_score": 21, "pair_b_score": 17}, ...]
    set_scores: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    winner_pair_id: Optional[str] = Field(default=None)
    scheduled_at: str  # normalized ISO instant (UTC, "Z" suffix)
    completed_at: Optional[datetime] = Field(sa_type=DateTime, default=None)


def is_placeholder_pair_id(pair_id: Optional[str]) -> bool:
    return pair_id is None or not pair_id.strip() or pair_id == PLACEHOLDER_PAIR_ID
