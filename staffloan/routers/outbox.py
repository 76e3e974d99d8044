from typing import Optional

from fastapi import APIRouter, Depends, Query

from staffloan.core.authorization import require_role
from staffloan.core.roles import Role
from staffloan.database import SessionLocal
from staffloan.models.event_outbox import EventOutbox
from staffloan.schemas.outbox import OutboxListResponse, OutboxProcessResponse, OutboxRowResponse
from staffloan.services.outbox_processor import process_outbox_batch

router = APIRouter(
    prefix="/outbox",
    tags=["Outbox"],
    dependencies=[Depends(require_role(Role.LENDER))],
)


@router.get("", response_model=OutboxListResponse)
def list_outbox(
    processed: Optional[bool] = None,
    event_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=1_000_000),
):
    db = SessionLocal()
    try:
        q = db.query(EventOutbox)
        if processed is not None:
            q = q.filter(EventOutbox.processed.is_(processed))
        if event_type is not None:
            q = q.filter(EventOutbox.event_type == event_type)

        rows = q.order_by(EventOutbox.id.asc()).offset(offset).limit(limit).all()
        return OutboxListResponse(
            limit=limit,
            offset=offset,
            rows=[OutboxRowResponse.model_validate(r) for r in rows],
        )
    finally:
        db.close()


@router.post("/process", response_model=OutboxProcessResponse)
def process_outbox_now(batch_size: int = Query(50, ge=1, le=500)):
    """Deliver one batch immediately instead of waiting for the background worker."""
    result = process_outbox_batch(batch_size=batch_size)
    return OutboxProcessResponse(processed=result.processed, failed=result.failed)
