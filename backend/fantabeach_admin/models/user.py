from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from fantabeach_admin.clock import naive_utc_now

ADMIN_ROLES = ("super_admin", "ops_admin")


class User(SQLModel, table=True):
    __tablename__ = "app_user"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    display_name: str
    role: Optional[str] = Field(default=None)  # "super_admin" | "ops_admin" | None (fantasy manager)
    active: bool = Field(default=True)
    password_hash: Optional[str] = Field(default=None)
    created_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)


class AdminSession(SQLModel, table=True):
    __tablename__ = "admin_session"

    token: str = Field(primary_key=True)
    user_id: int = Field(foreign_key="app_user.id", index=True)
    expires_at: datetime = Field(sa_type=DateTime)
    created_at: datetime = Field(sa_type=DateTime, default_factory=naive_utc_now)
