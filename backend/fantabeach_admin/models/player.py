from typing import Optional

from sqlmodel import Field, SQLModel


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    gender: str  # "men" | "women"
    country_code: str = Field(default="")
    rank_points: int = Field(default=0)
    status: str = Field(default="active")  # "active" | "injured" | "inactive"
