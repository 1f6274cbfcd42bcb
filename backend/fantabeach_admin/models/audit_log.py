from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel


class AuditLog(SQLModel, table=True):
    """Append-only. Rows are never updated or deleted."""

    __tablename__ = "audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    actor_user_id: str = Field(index=True)
    action: str = Field(index=True)  # dotted verb, e.g. "match.complete"
    entity_type: str = Field(index=True)
    entity_id: str = Field(index=True)
    before: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    after: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    timestamp: datetime = Field(sa_type=DateTime, index=True)
