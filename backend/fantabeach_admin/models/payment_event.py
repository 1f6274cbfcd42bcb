from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel


class PaymentEvent(SQLModel, table=True):
    __tablename__ = "payment_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    provider: str  # "apple" | "google" | "stripe"
    external_id: str = Field(index=True)
    status: str = Field(default="received")  # "received" | "verified" | "rejected"
    received_at: datetime = Field(sa_type=DateTime)
    verified_at: Optional[datetime] = Field(sa_type=DateTime, default=None)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
