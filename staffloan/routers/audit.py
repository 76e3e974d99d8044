from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from staffloan.core.authorization import require_role
from staffloan.core.roles import Actor, Role
from staffloan.database import SessionLocal
from staffloan.schemas.audit import AuditLogResponse
from staffloan.services.audit import list_audit_logs

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=List[AuditLogResponse])
def list_audit(
    table_name: Optional[str] = None,
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    record_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0, le=1_000_000),
    _actor: Actor = Depends(require_role(Role.LENDER)),
):
    db = SessionLocal()
    try:
        rows = list_audit_logs(
            db,
            table_name=table_name,
            action=action,
            actor_id=actor_id,
            record_id=record_id,
            limit=limit,
            offset=offset,
        )
        return [AuditLogResponse.model_validate(r) for r in rows]
    finally:
        db.close()
