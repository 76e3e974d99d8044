from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy.orm import Session

from staffloan.models.audit_log import AuditLog


def _jsonable(values: Optional[dict]) -> Optional[dict]:
    if values is None:
        return None
    out: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, (datetime, date, time)):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


def record_audit(
    db: Session,
    *,
    actor_id: Optional[str],
    table_name: str,
    record_id: str,
    action: str,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> AuditLog:
    row = AuditLog(
        actor_id=None if actor_id is None else str(actor_id),
        table_name=table_name,
        record_id=str(record_id),
        action=action,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
    )
    db.add(row)
    db.flush()
    return row


def list_audit_logs(
    db: Session,
    *,
    table_name: Optional[str] = None,
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    record_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AuditLog]:
    q = db.query(AuditLog)

    if table_name is not None:
        q = q.filter(AuditLog.table_name == str(table_name))
    if action is not None:
        q = q.filter(AuditLog.action == str(action))
    if actor_id is not None:
        q = q.filter(AuditLog.actor_id == str(actor_id))
    if record_id is not None:
        q = q.filter(AuditLog.record_id == str(record_id))

    return (
        q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )
