from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from staffloan.core.authorization import EntityType, ensure_can_transition
from staffloan.core.errors import ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ApprovalStatus, Decision, Side
from staffloan.models.time_entry import TimeEntry
from staffloan.services import dual_approval, store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import parse_time, variance_vs_plan
from staffloan.services.schedule_proposals import approved_plan_for

logger = logging.getLogger(__name__)

_ENTITY = EntityType.TIME_ENTRY


def declare(
    ctx: WorkflowContext,
    *,
    day: date,
    start_time,
    end_time,
    site_id: str,
    comment: Optional[str] = None,
    staff_id: Optional[str] = None,
) -> TimeEntry:
    ensure_can_transition(_ENTITY, "declare", ctx.actor)
    target_staff_id = dual_approval.resolve_declared_staff(ctx, staff_id)

    if not site_id:
        raise ValidationError("site_id is required")

    plan = approved_plan_for(ctx.db, target_staff_id, day)
    variance = variance_vs_plan(
        start_time,
        end_time,
        None if plan is None else plan.start_time,
        None if plan is None else plan.end_time,
    )

    entry = store.insert(
        ctx.db,
        TimeEntry(
            staff_id=target_staff_id,
            date=day,
            start_time=parse_time(start_time),
            end_time=parse_time(end_time),
            site_id=str(site_id),
            comment=comment,
            variance_hours=round(variance, 2),
            **dual_approval.initial_sides(ctx),
        ),
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=TimeEntry.__tablename__,
        record_id=entry.id,
        action="insert",
        new_values={
            "staff_id": entry.staff_id,
            "date": entry.date,
            "start_time": entry.start_time,
            "end_time": entry.end_time,
            "variance_hours": entry.variance_hours,
            "host_status": entry.host_status,
            "lender_status": entry.lender_status,
        },
    )

    logger.info(
        "Time entry declared",
        extra={"time_entry_id": entry.id, "staff_id": entry.staff_id, "variance_hours": entry.variance_hours},
    )
    return entry


def decide(ctx: WorkflowContext, entry_id: str, side: Side, decision: Decision) -> TimeEntry:
    return dual_approval.decide(ctx, TimeEntry, _ENTITY, entry_id, side, decision)


def approve_host(ctx: WorkflowContext, entry_id: str) -> TimeEntry:
    return decide(ctx, entry_id, Side.HOST, Decision.APPROVE)


def reject_host(ctx: WorkflowContext, entry_id: str) -> TimeEntry:
    return decide(ctx, entry_id, Side.HOST, Decision.REJECT)


def approve_lender(ctx: WorkflowContext, entry_id: str) -> TimeEntry:
    return decide(ctx, entry_id, Side.LENDER, Decision.APPROVE)


def reject_lender(ctx: WorkflowContext, entry_id: str) -> TimeEntry:
    return decide(ctx, entry_id, Side.LENDER, Decision.REJECT)


def delete(ctx: WorkflowContext, entry_id: str) -> None:
    dual_approval.delete_pending(ctx, TimeEntry, _ENTITY, entry_id)


def list_entries(
    ctx: WorkflowContext,
    *,
    staff_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TimeEntry]:
    q = ctx.db.query(TimeEntry)

    if ctx.role is Role.STAFF:
        q = q.filter(TimeEntry.staff_id == ctx.actor_id)
    elif staff_id is not None:
        q = q.filter(TimeEntry.staff_id == str(staff_id))

    if ctx.role is Role.ACCOUNTING:
        q = q.filter(TimeEntry.lender_status == ApprovalStatus.APPROVED.value)

    if date_from is not None:
        q = q.filter(TimeEntry.date >= date_from)
    if date_to is not None:
        q = q.filter(TimeEntry.date <= date_to)

    return (
        q.order_by(TimeEntry.date.desc(), TimeEntry.start_time.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )
