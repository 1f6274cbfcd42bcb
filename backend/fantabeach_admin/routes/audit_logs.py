from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, sync_lock_state
from fantabeach_admin.errors import not_found
from fantabeach_admin.models.audit_log import AuditLog
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import AuditLogResponse, Paginated, audit_log_to_response
from fantabeach_admin.services.pagination import DEFAULT_PAGE_SIZE, clamp_page

router = APIRouter()


@router.get("/audit-logs", response_model=Paginated[AuditLogResponse])
def list_audit_logs(
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    actor_user_id: Optional[str] = Query(None),
    from_ts: Optional[datetime] = Query(None, alias="from"),
    to_ts: Optional[datetime] = Query(None, alias="to"),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
):
    """Newest first. `from`/`to` bound the entry timestamp, inclusive."""
    sync_lock_state(repo, now)
    page, page_size = clamp_page(page, page_size)
    items, total = repo.list_audit_logs(
        offset=(page - 1) * page_size,
        limit=page_size,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        since=storage_timestamp(from_ts) if from_ts else None,
        until=storage_timestamp(to_ts) if to_ts else None,
    )
    return Paginated[AuditLogResponse](
        items=[audit_log_to_response(log) for log in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.get("/audit-logs/{log_id}", response_model=AuditLogResponse)
def get_audit_log(
    log_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> AuditLogResponse:
    sync_lock_state(repo, now)
    log = repo.get(AuditLog, log_id)
    if log is None:
        raise not_found("Audit log")
    return audit_log_to_response(log)
