from datetime import datetime

from fastapi import APIRouter, Depends, Query

from fantabeach_admin.clock import get_now, storage_timestamp
from fantabeach_admin.dependencies import get_current_user_id, sync_lock_state
from fantabeach_admin.errors import not_found
from fantabeach_admin.models.payment_event import PaymentEvent
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import Paginated, PaymentEventResponse, payment_event_snapshot
from fantabeach_admin.services import audit
from fantabeach_admin.services.pagination import DEFAULT_PAGE_SIZE, paginate

router = APIRouter()


@router.get("/payments/events", response_model=Paginated[PaymentEventResponse])
def list_payment_events(
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
):
    sync_lock_state(repo, now)
    items, page, page_size, total = paginate(repo.list_payment_events(), page, page_size)
    return Paginated[PaymentEventResponse](
        items=[PaymentEventResponse.model_validate(e) for e in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.post("/payments/events/{event_id}/reverify", response_model=PaymentEventResponse)
def reverify_payment_event(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> PaymentEventResponse:
    """Mark an event verified. Provider-side verification is not performed here."""
    sync_lock_state(repo, now)
    event = repo.get(PaymentEvent, event_id)
    if event is None:
        raise not_found("Payment event")

    before = payment_event_snapshot(event)
    event.status = "verified"
    event.verified_at = storage_timestamp(now)
    repo.add(event)

    audit.record(
        repo, user_id, "payment.reverify", "payment_event", event.id, now,
        before=before, after=payment_event_snapshot(event),
    )
    repo.commit()
    return PaymentEventResponse.model_validate(event)
