from datetime import date, datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from fantabeach_admin.clock import naive_utc_now

TOURNAMENT_STATUSES = ("draft", "open", "entry_locked", "live", "completed", "archived")


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    name: str
    slug: str = Field(index=True, unique=True)
    location: str
    gender: str  # "men" | "women"; the whole competition is single-gender
    is_public: bool = Field(default=False)
    status: str = Field(default="draft")
    start_date: date
    end_date: date

    # Lineup policy (immutable once lineup_lock_at has passed)
    roster_size: int
    starter_count: int
    reserve_count: int
    lineup_lock_at: str  # ISO instant as submitted; unparseable values never lock
    timezone: str  # IANA name; resolved to UTC when unknown
    no_retroactive_scoring: bool = Field(default=True)

    entry_list_locked: bool = Field(default=False)
    lineup_locked: bool = Field(default=False)
    bracket_generated_at: Optional[datetime] = Field(sa_type=DateTime, default=None)
    created_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)
    updated_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)
