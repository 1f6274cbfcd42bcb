from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

ENTRY_STATUSES = ("pool", "qualification", "reserve")


class EntryListItem(SQLModel, table=True):
    __tablename__ = "entry_list_item"
    __table_args__ = (SAUniqueConstraint("tournament_id", "pair_id", name="uq_entry_tournament_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    position: int = Field(default=0)  # submission order within the list

    # Embedded pair; pair_id is the stable reference used by matches
    pair_id: str
    player_a_id: int = Field(foreign_key="player.id")
    player_b_id: int = Field(foreign_key="player.id")
    seed: int = Field(default=0)
    pair_status: str = Field(default="pool")  # mirrors entry_status

    coach: Optional[str] = Field(default=None)
    ranking: int = Field(default=0)
    entry_status: str = Field(default="pool")
    reserve_order: Optional[int] = Field(default=None)  # set iff entry_status == "reserve"
