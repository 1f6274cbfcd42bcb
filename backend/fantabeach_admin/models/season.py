from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from fantabeach_admin.clock import naive_utc_now


class Season(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    year: int
    name: str
    status: str = Field(default="upcoming")  # "upcoming" | "active" | "closed"
    created_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)
    updated_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)
