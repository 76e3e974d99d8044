from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from staffloan.core.authorization import EntityType, ensure_can_transition, ensure_owner
from staffloan.core.errors import AuthorizationError, ConflictError, ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ApprovalStatus, ClosureStatus, Decision, Side
from staffloan.models.consistency_alert import ConsistencyAlert
from staffloan.models.monthly_closure import MonthlyClosure
from staffloan.models.weekly_report import WeeklyReport
from staffloan.services import store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import month_bounds, month_key
from staffloan.services.notifications import notify_weekly_report_decision

logger = logging.getLogger(__name__)

_ENTITY = EntityType.WEEKLY_REPORT
_PENDING = ApprovalStatus.PENDING.value

# Content fields a staff member may (re)declare.
EDITABLE_FIELDS = (
    "host_activity",
    "host_hours",
    "lender_activity",
    "lender_hours",
    "comment",
)
NON_NULLABLE_FIELDS = ("host_activity", "host_hours", "lender_activity", "lender_hours")

_FULLY_PENDING = {
    "host_status": _PENDING,
    "lender_status": _PENDING,
    "locked": False,
}


def week_bounds(week_start: date, week_end: Optional[date] = None) -> tuple[date, date]:
    """Validate a Monday..Sunday window; ``week_end`` defaults to start + 6 days."""
    if week_start.weekday() != 0:
        raise ValidationError("Week must start on a Monday")
    expected_end = week_start + timedelta(days=6)
    if week_end is not None and week_end != expected_end:
        raise ValidationError(f"Week end must be {expected_end.isoformat()} (start + 6 days)")
    return week_start, expected_end


def _ensure_month_open(db: Session, staff_id: str, week_start: date) -> None:
    """A week belongs to the month of its Monday; closed months take no new weeks."""
    month = month_key(week_start)
    closed = store.find(
        db,
        MonthlyClosure,
        MonthlyClosure.staff_id == str(staff_id),
        MonthlyClosure.month == month,
        MonthlyClosure.status == ClosureStatus.CLOSED.value,
    )
    if closed:
        raise ConflictError(f"Month {month} is closed for staff {staff_id}")


def _check_content(values: dict) -> None:
    for name in NON_NULLABLE_FIELDS:
        if name in values and values[name] is None:
            raise ValidationError(f"{name} may not be null")


def _check_hours(values: dict) -> None:
    for name in ("host_hours", "lender_hours"):
        if name in values and values[name] is not None and float(values[name]) < 0:
            raise ValidationError(f"{name} must not be negative")


def submit(
    ctx: WorkflowContext,
    *,
    week_start: date,
    week_end: Optional[date] = None,
    host_activity: str = "",
    host_hours: float = 0,
    lender_activity: str = "",
    lender_hours: float = 0,
    comment: Optional[str] = None,
) -> WeeklyReport:
    ensure_can_transition(_ENTITY, "submit", ctx.actor)
    start, end = week_bounds(week_start, week_end)
    _check_hours({"host_hours": host_hours, "lender_hours": lender_hours})
    _ensure_month_open(ctx.db, ctx.actor_id, start)

    report = store.insert(
        ctx.db,
        WeeklyReport(
            staff_id=ctx.actor_id,
            week_start=start,
            week_end=end,
            host_activity=host_activity or "",
            host_hours=float(host_hours or 0),
            lender_activity=lender_activity or "",
            lender_hours=float(lender_hours or 0),
            comment=comment,
            host_status=_PENDING,
            lender_status=_PENDING,
            locked=False,
            declared_at=ctx.now(),
        ),
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=WeeklyReport.__tablename__,
        record_id=report.id,
        action="insert",
        new_values={"week_start": report.week_start, "week_end": report.week_end},
    )

    logger.info(
        "Weekly report submitted",
        extra={"weekly_report_id": report.id, "staff_id": report.staff_id, "week_start": start.isoformat()},
    )
    return report


def update_report(ctx: WorkflowContext, report_id: str, changes: dict) -> WeeklyReport:
    ensure_can_transition(_ENTITY, "update", ctx.actor)
    report = store.get(ctx.db, WeeklyReport, report_id)
    ensure_owner(ctx.actor, report.staff_id)

    values = {name: changes[name] for name in EDITABLE_FIELDS if name in changes}
    if "week_start" in changes and changes["week_start"] is not None:
        start, end = week_bounds(changes["week_start"], changes.get("week_end"))
        values["week_start"] = start
        values["week_end"] = end
    elif changes.get("week_end") is not None:
        week_bounds(report.week_start, changes["week_end"])
    _check_content(values)
    _check_hours(values)

    if not values:
        raise ValidationError("Nothing to update")
    if "week_start" in values:
        _ensure_month_open(ctx.db, report.staff_id, values["week_start"])

    old = {name: getattr(report, name) for name in values}
    values["declared_at"] = ctx.now()

    report = store.conditional_update(ctx.db, WeeklyReport, report_id, expected=_FULLY_PENDING, values=values)
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=WeeklyReport.__tablename__,
        record_id=report.id,
        action="update",
        old_values=old,
        new_values={name: getattr(report, name) for name in old},
    )
    return report


def delete_report(ctx: WorkflowContext, report_id: str) -> None:
    ensure_can_transition(_ENTITY, "delete", ctx.actor)
    report = store.get(ctx.db, WeeklyReport, report_id)
    ensure_owner(ctx.actor, report.staff_id)

    store.conditional_delete(ctx.db, WeeklyReport, report_id, expected=_FULLY_PENDING)
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=WeeklyReport.__tablename__,
        record_id=str(report_id),
        action="delete",
        old_values={"week_start": report.week_start, "staff_id": report.staff_id},
    )


def _decide(ctx: WorkflowContext, report_id: str, side: Side, decision: Decision, comment: Optional[str]) -> WeeklyReport:
    ensure_can_transition(_ENTITY, f"decide_{side.value}", ctx.actor)

    status_field = f"{side.value}_status"
    new_status = ApprovalStatus.APPROVED if decision is Decision.APPROVE else ApprovalStatus.REJECTED

    values = {
        status_field: new_status.value,
        f"{side.value}_decided_by": ctx.actor_id,
        f"{side.value}_decided_at": ctx.now(),
    }
    if comment:
        values[f"{side.value}_comment"] = comment

    try:
        report = store.conditional_update(
            ctx.db,
            WeeklyReport,
            report_id,
            expected={status_field: _PENDING, "locked": False},
            values=values,
        )
    except ConflictError:
        current = store.get(ctx.db, WeeklyReport, report_id)
        if current.locked:
            raise ConflictError("Weekly report is locked") from None
        raise ConflictError(f"Weekly report already decided on the {side.value} side") from None

    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=WeeklyReport.__tablename__,
        record_id=report.id,
        action=f"decide_{side.value}",
        old_values={status_field: _PENDING},
        new_values={status_field: new_status.value, "comment": comment},
    )
    notify_weekly_report_decision(
        ctx.db,
        report,
        side=side,
        decision=decision,
        decided_by=ctx.actor_id,
        comment=comment,
    )

    logger.info(
        "Weekly report decided",
        extra={"weekly_report_id": report.id, "side": side.value, "status": new_status.value},
    )
    return report


def decide_host(ctx: WorkflowContext, report_id: str, decision: Decision, comment: Optional[str] = None) -> WeeklyReport:
    return _decide(ctx, report_id, Side.HOST, Decision(decision), comment)


def decide_lender(ctx: WorkflowContext, report_id: str, decision: Decision, comment: Optional[str] = None) -> WeeklyReport:
    return _decide(ctx, report_id, Side.LENDER, Decision(decision), comment)


def decide(ctx: WorkflowContext, report_id: str, decision: Decision, comment: Optional[str] = None) -> WeeklyReport:
    """Decide on the side the acting role is responsible for."""
    if ctx.role is Role.HOST:
        return decide_host(ctx, report_id, decision, comment)
    if ctx.role is Role.LENDER:
        return decide_lender(ctx, report_id, decision, comment)
    raise AuthorizationError(f"Role {ctx.role.value} may not decide on weekly reports")


def lock_reports_for_month(db: Session, staff_id: str, month) -> int:
    """Freeze the staff member's reports whose week starts inside the closed month."""
    start, end = month_bounds(month)
    result = db.execute(
        update(WeeklyReport)
        .where(
            WeeklyReport.staff_id == str(staff_id),
            WeeklyReport.week_start >= start,
            WeeklyReport.week_start < end,
            WeeklyReport.locked.is_(False),
        )
        .values(locked=True)
        .execution_options(synchronize_session="fetch")
    )
    return int(result.rowcount or 0)


def list_reports(
    ctx: WorkflowContext,
    *,
    staff_id: Optional[str] = None,
    host_status: Optional[str] = None,
    lender_status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[WeeklyReport]:
    q = ctx.db.query(WeeklyReport)

    if ctx.role is Role.STAFF:
        q = q.filter(WeeklyReport.staff_id == ctx.actor_id)
    elif staff_id is not None:
        q = q.filter(WeeklyReport.staff_id == str(staff_id))

    if host_status is not None:
        q = q.filter(WeeklyReport.host_status == str(host_status))
    if lender_status is not None:
        q = q.filter(WeeklyReport.lender_status == str(lender_status))

    return (
        q.order_by(WeeklyReport.week_start.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )


def list_alerts(ctx: WorkflowContext, report_id: str, include_resolved: bool = False) -> list[ConsistencyAlert]:
    report = store.get(ctx.db, WeeklyReport, report_id)
    ensure_owner(ctx.actor, report.staff_id)

    criteria = [ConsistencyAlert.weekly_report_id == report.id]
    if not include_resolved:
        criteria.append(ConsistencyAlert.resolved.is_(False))
    return store.find(
        ctx.db,
        ConsistencyAlert,
        *criteria,
        order_by=(ConsistencyAlert.created_at.asc(), ConsistencyAlert.id.asc()),
    )
