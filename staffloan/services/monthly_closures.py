"""Monthly closure: staff -> host -> lender sign-off on one (month, staff) pair."""
from __future__ import annotations

import logging
from typing import Optional

from staffloan.core.authorization import EntityType, ensure_can_transition, ensure_owner
from staffloan.core.errors import AuthorizationError, ConflictError, ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ClosureStatus, closure_status
from staffloan.models._common import new_id
from staffloan.models.monthly_closure import MonthlyClosure
from staffloan.services import store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import month_key
from staffloan.services.weekly_reports import lock_reports_for_month

logger = logging.getLogger(__name__)

_ENTITY = EntityType.MONTHLY_CLOSURE

# role -> (flag it sets, status it must find)
_SIGNATURES = {
    Role.STAFF: ("signature_staff", ClosureStatus.AWAITING_STAFF),
    Role.HOST: ("signature_host", ClosureStatus.AWAITING_HOST),
    Role.LENDER: ("signature_lender", ClosureStatus.AWAITING_LENDER),
}
_SIGNING_ORDER = (Role.STAFF, Role.HOST, Role.LENDER)


def get_or_create(ctx: WorkflowContext, month, staff_id: Optional[str] = None) -> MonthlyClosure:
    """Return the closure for (month, staff), creating it in awaiting_staff if absent."""
    ensure_can_transition(_ENTITY, "open", ctx.actor)

    if ctx.role is Role.STAFF:
        if staff_id is not None and str(staff_id) != ctx.actor_id:
            raise AuthorizationError("Staff members may only open their own closures")
        staff_id = ctx.actor_id
    elif not staff_id:
        raise ValidationError("staff_id is required")

    key = month_key(month)
    closure, created = store.insert_or_fetch(
        ctx.db,
        MonthlyClosure,
        values={
            "id": new_id(),
            "month": key,
            "staff_id": str(staff_id),
            "signature_staff": False,
            "signature_host": False,
            "signature_lender": False,
            "status": ClosureStatus.AWAITING_STAFF.value,
            "created_at": ctx.now(),
            "updated_at": ctx.now(),
        },
        key_columns=("month", "staff_id"),
    )

    if created:
        record_audit(
            ctx.db,
            actor_id=ctx.actor_id,
            table_name=MonthlyClosure.__tablename__,
            record_id=closure.id,
            action="insert",
            new_values={"month": key, "staff_id": closure.staff_id, "status": closure.status},
        )
        logger.info(
            "Monthly closure opened",
            extra={"closure_id": closure.id, "month": key, "staff_id": closure.staff_id},
        )
    return closure


def _sign(ctx: WorkflowContext, closure_id: str, role: Role) -> MonthlyClosure:
    flag, expected_status = _SIGNATURES[role]
    ensure_can_transition(_ENTITY, f"sign_{role.value}", ctx.actor)

    closure = store.get(ctx.db, MonthlyClosure, closure_id)
    if role is Role.STAFF:
        ensure_owner(ctx.actor, closure.staff_id)

    # Derived from the predecessor status, not from a possibly stale row.
    position = _SIGNING_ORDER.index(role)
    flags = {_SIGNATURES[r][0]: i <= position for i, r in enumerate(_SIGNING_ORDER)}
    new_status = closure_status(**flags)

    values = {flag: True, "status": new_status.value, "updated_at": ctx.now()}
    if new_status is ClosureStatus.CLOSED:
        values["closed_at"] = ctx.now()

    try:
        closure = store.conditional_update(
            ctx.db,
            MonthlyClosure,
            closure_id,
            expected={"status": expected_status.value, flag: False},
            values=values,
        )
    except ConflictError:
        current = store.get(ctx.db, MonthlyClosure, closure_id)
        raise ConflictError(
            f"Closure is {current.status}; {role.value} can only sign while {expected_status.value}"
        ) from None

    locked = 0
    if new_status is ClosureStatus.CLOSED:
        locked = lock_reports_for_month(ctx.db, closure.staff_id, closure.month)

    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=MonthlyClosure.__tablename__,
        record_id=closure.id,
        action=f"sign_{role.value}",
        old_values={"status": expected_status.value},
        new_values={"status": new_status.value},
    )

    logger.info(
        "Monthly closure signed",
        extra={
            "closure_id": closure.id,
            "signed_by": role.value,
            "status": new_status.value,
            "locked_weekly_reports": locked,
        },
    )
    return closure


def sign_staff(ctx: WorkflowContext, closure_id: str) -> MonthlyClosure:
    return _sign(ctx, closure_id, Role.STAFF)


def sign_host(ctx: WorkflowContext, closure_id: str) -> MonthlyClosure:
    return _sign(ctx, closure_id, Role.HOST)


def sign_lender(ctx: WorkflowContext, closure_id: str) -> MonthlyClosure:
    return _sign(ctx, closure_id, Role.LENDER)


def sign(ctx: WorkflowContext, closure_id: str) -> MonthlyClosure:
    """Sign with whichever signature the acting role owns."""
    if ctx.role not in _SIGNATURES:
        raise AuthorizationError(f"Role {ctx.role.value} does not sign monthly closures")
    return _sign(ctx, closure_id, ctx.role)


def attach_report(ctx: WorkflowContext, closure_id: str, report_url: str) -> MonthlyClosure:
    ensure_can_transition(_ENTITY, "attach_report", ctx.actor)
    if not report_url:
        raise ValidationError("report_url is required")

    closure = store.conditional_update(
        ctx.db,
        MonthlyClosure,
        closure_id,
        expected={"status": ClosureStatus.CLOSED.value},
        values={"report_url": str(report_url), "updated_at": ctx.now()},
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=MonthlyClosure.__tablename__,
        record_id=closure.id,
        action="attach_report",
        new_values={"report_url": closure.report_url},
    )
    return closure


def list_closures(
    ctx: WorkflowContext,
    *,
    staff_id: Optional[str] = None,
    month=None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[MonthlyClosure]:
    q = ctx.db.query(MonthlyClosure)

    if ctx.role is Role.STAFF:
        q = q.filter(MonthlyClosure.staff_id == ctx.actor_id)
    elif staff_id is not None:
        q = q.filter(MonthlyClosure.staff_id == str(staff_id))

    if month is not None:
        q = q.filter(MonthlyClosure.month == month_key(month))
    if status is not None:
        q = q.filter(MonthlyClosure.status == str(status))

    return (
        q.order_by(MonthlyClosure.month.desc(), MonthlyClosure.staff_id.asc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )
