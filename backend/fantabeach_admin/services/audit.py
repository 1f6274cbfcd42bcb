"""
Append-only audit trail.

Snapshots are serialized to plain JSON structures at record time, so later
in-place mutation of the live entity cannot alter stored history.
"""
import json
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel

from fantabeach_admin.clock import storage_timestamp
from fantabeach_admin.models.audit_log import AuditLog


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not audit-serializable")


def to_snapshot(value: Any) -> Any:
    """Structural clone via a JSON round trip. None stays None."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.loads(json.dumps(value, default=_json_default))


def record(
    repo,
    actor_user_id: Any,
    action: str,
    entity_type: str,
    entity_id: Any,
    now: datetime,
    before: Optional[Any] = None,
    after: Optional[Any] = None,
) -> AuditLog:
    log = AuditLog(
        actor_user_id=str(actor_user_id),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before=to_snapshot(before),
        after=to_snapshot(after),
        timestamp=storage_timestamp(now),
    )
    repo.add(log)
    return log
