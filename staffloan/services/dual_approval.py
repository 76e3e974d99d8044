"""Two independent host/lender sign-offs on one record (time entries, expenses).

Each side moves pending -> approved or pending -> rejected exactly once. The
sides do not gate each other: the lender may decide before the host, or
after a host rejection, and the lender's status stays the authoritative one
for monthly totals.
"""
from __future__ import annotations

import logging
from typing import Optional

from staffloan.core.authorization import EntityType, ensure_can_transition, ensure_owner
from staffloan.core.errors import AuthorizationError, ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ApprovalStatus, Decision, Side
from staffloan.services import store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext

logger = logging.getLogger(__name__)

_PENDING = ApprovalStatus.PENDING.value


def _side_fields(side: Side) -> tuple[str, str, str]:
    return f"{side.value}_status", f"{side.value}_validated_by", f"{side.value}_validated_at"


def action_name(decision: Decision, side: Side) -> str:
    return f"{Decision(decision).value}_{Side(side).value}"


def decide(ctx: WorkflowContext, model, entity_type: EntityType, record_id: str, side: Side, decision: Decision):
    side = Side(side)
    decision = Decision(decision)
    action = action_name(decision, side)
    ensure_can_transition(entity_type, action, ctx.actor)

    status_field, by_field, at_field = _side_fields(side)
    new_status = ApprovalStatus.APPROVED if decision is Decision.APPROVE else ApprovalStatus.REJECTED

    row = store.conditional_update(
        ctx.db,
        model,
        record_id,
        expected={status_field: _PENDING},
        values={
            status_field: new_status.value,
            by_field: ctx.actor_id,
            at_field: ctx.now(),
        },
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=model.__tablename__,
        record_id=row.id,
        action=action,
        old_values={status_field: _PENDING},
        new_values={status_field: new_status.value},
    )

    logger.info(
        "Dual approval decided",
        extra={
            "entity": entity_type.value,
            "record_id": row.id,
            "action": action,
            "actor_id": ctx.actor_id,
        },
    )
    return row


def initial_sides(ctx: WorkflowContext) -> dict:
    """Status fields for a fresh declaration.

    A lender declaring on a staff member's behalf has already vouched for it
    on both sides; anything else starts fully pending.
    """
    if ctx.role is Role.LENDER:
        now = ctx.now()
        values = {}
        for side in Side:
            status_field, by_field, at_field = _side_fields(side)
            values[status_field] = ApprovalStatus.APPROVED.value
            values[by_field] = ctx.actor_id
            values[at_field] = now
        return values

    return {
        "host_status": _PENDING,
        "lender_status": _PENDING,
    }


def resolve_declared_staff(ctx: WorkflowContext, staff_id: Optional[str]) -> str:
    if ctx.role is Role.STAFF:
        if staff_id is not None and str(staff_id) != ctx.actor_id:
            raise AuthorizationError("Staff members declare for themselves only")
        return ctx.actor_id

    if not staff_id:
        raise ValidationError("staff_id is required when declaring on behalf of a staff member")
    return str(staff_id)


def delete_pending(ctx: WorkflowContext, model, entity_type: EntityType, record_id: str) -> None:
    """Owners may withdraw a declaration while neither side has decided."""
    ensure_can_transition(entity_type, "delete", ctx.actor)
    row = store.get(ctx.db, model, record_id)
    ensure_owner(ctx.actor, row.staff_id)

    store.conditional_delete(
        ctx.db,
        model,
        record_id,
        expected={"host_status": _PENDING, "lender_status": _PENDING},
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=model.__tablename__,
        record_id=str(record_id),
        action="delete",
        old_values={"staff_id": row.staff_id, "date": row.date},
    )


def pending_for_side(model, role: Role) -> Optional[list]:
    """Filter for records awaiting a decision from ``role``; None when nothing can."""
    if role is Role.HOST:
        return [model.host_status == _PENDING]
    if role is Role.LENDER:
        return [model.lender_status == _PENDING]
    return None
