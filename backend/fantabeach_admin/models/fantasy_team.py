from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel

from fantabeach_admin.clock import naive_utc_now


class UserTournamentTeam(SQLModel, table=True):
    """A fantasy manager's roster for one tournament (written by the consumer app)."""

    __tablename__ = "user_tournament_team"
    __table_args__ = (SAUniqueConstraint("user_id", "tournament_id", name="uq_team_user_tournament"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="app_user.id", index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    roster_player_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    starters: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    reserves: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)


class TournamentRegistration(SQLModel, table=True):
    __tablename__ = "tournament_registration"
    __table_args__ = (SAUniqueConstraint("user_id", "tournament_id", name="uq_registration_user_tournament"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="app_user.id", index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    registered_at: datetime = Field(sa_type=DateTime)
