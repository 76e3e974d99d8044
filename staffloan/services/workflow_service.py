"""Read-only views across the workflow: what waits on whom, and month summaries.

Nothing here is cached; each call reads the current rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from staffloan.core.authorization import EntityType, ensure_owner
from staffloan.core.errors import AuthorizationError, ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ApprovalStatus, ClosureStatus, ProposalStatus
from staffloan.models.expense import Expense
from staffloan.models.monthly_closure import MonthlyClosure
from staffloan.models.schedule_proposal import ScheduleProposal
from staffloan.models.time_entry import TimeEntry
from staffloan.models.weekly_report import WeeklyReport
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import MonthlyTotals, month_bounds, month_key, monthly_totals
from staffloan.services.dual_approval import pending_for_side

# Monthly closures wait on exactly one role at a time.
_CLOSURE_WAITING_ON = {
    Role.STAFF: ClosureStatus.AWAITING_STAFF,
    Role.HOST: ClosureStatus.AWAITING_HOST,
    Role.LENDER: ClosureStatus.AWAITING_LENDER,
}

_DUAL_APPROVAL_MODELS = {
    EntityType.TIME_ENTRY: TimeEntry,
    EntityType.EXPENSE: Expense,
    EntityType.WEEKLY_REPORT: WeeklyReport,
}


def pending_for_role(ctx: WorkflowContext, entity_type: EntityType, limit: int = 200) -> list:
    """Items of ``entity_type`` awaiting a decision from the acting role."""
    entity_type = EntityType(entity_type)
    role = ctx.role

    if entity_type is EntityType.MONTHLY_CLOSURE:
        waiting = _CLOSURE_WAITING_ON.get(role)
        if waiting is None:
            return []
        q = ctx.db.query(MonthlyClosure).filter(MonthlyClosure.status == waiting.value)
        if role is Role.STAFF:
            q = q.filter(MonthlyClosure.staff_id == ctx.actor_id)
        return q.order_by(MonthlyClosure.month.asc()).limit(int(limit)).all()

    if entity_type is EntityType.SCHEDULE_PROPOSAL:
        if role is not Role.LENDER:
            return []
        return (
            ctx.db.query(ScheduleProposal)
            .filter(ScheduleProposal.status == ProposalStatus.PROPOSED.value)
            .order_by(ScheduleProposal.date.asc(), ScheduleProposal.start_time.asc())
            .limit(int(limit))
            .all()
        )

    model = _DUAL_APPROVAL_MODELS[entity_type]
    criteria = pending_for_side(model, role)
    if criteria is None:
        return []

    q = ctx.db.query(model).filter(*criteria)
    if entity_type is EntityType.WEEKLY_REPORT:
        q = q.filter(WeeklyReport.locked.is_(False)).order_by(WeeklyReport.week_start.asc())
    else:
        q = q.order_by(model.date.asc(), model.created_at.asc())
    return q.limit(int(limit)).all()


@dataclass(frozen=True)
class WeeklyReportLine:
    id: str
    week_start: date
    week_end: date
    host_hours: float
    lender_hours: float
    host_status: str
    lender_status: str
    locked: bool


@dataclass(frozen=True)
class MonthSummary:
    staff_id: str
    month: str
    totals: MonthlyTotals
    weekly_reports: list[WeeklyReportLine] = field(default_factory=list)
    declared_host_hours: float = 0.0
    declared_lender_hours: float = 0.0
    closure_status: Optional[str] = None

    @property
    def total_hours(self) -> float:
        return self.totals.total_hours

    @property
    def total_amount_cents(self) -> int:
        return self.totals.total_amount_cents


def month_summary(ctx: WorkflowContext, staff_id: Optional[str], month) -> MonthSummary:
    """Approved hours and expenses for one staff member and month.

    Only rows whose lender status is approved count toward the totals.
    Weekly reports are listed when their Monday..Sunday window touches the
    month, whatever their approval state. Declared hours only add up the
    weeks whose Monday falls in the month, the same weeks a closure locks,
    so a straddling week is counted once across two summaries.
    """
    if ctx.role is Role.STAFF:
        staff_id = staff_id or ctx.actor_id
        ensure_owner(ctx.actor, staff_id)
    elif ctx.role is Role.ACCOUNTING:
        raise AuthorizationError("Accounting reads approved lists, not closure summaries")
    elif not staff_id:
        raise ValidationError("staff_id is required")

    staff_id = str(staff_id)
    start, end = month_bounds(month)
    approved = ApprovalStatus.APPROVED.value

    entries = (
        ctx.db.query(TimeEntry)
        .filter(
            TimeEntry.staff_id == staff_id,
            TimeEntry.date >= start,
            TimeEntry.date < end,
            TimeEntry.lender_status == approved,
        )
        .all()
    )
    expenses = (
        ctx.db.query(Expense)
        .filter(
            Expense.staff_id == staff_id,
            Expense.date >= start,
            Expense.date < end,
            Expense.lender_status == approved,
        )
        .all()
    )
    reports = (
        ctx.db.query(WeeklyReport)
        .filter(
            WeeklyReport.staff_id == staff_id,
            WeeklyReport.week_start < end,
            WeeklyReport.week_end >= start,
        )
        .order_by(WeeklyReport.week_start.asc())
        .all()
    )
    closure = (
        ctx.db.query(MonthlyClosure)
        .filter(MonthlyClosure.staff_id == staff_id, MonthlyClosure.month == month_key(start))
        .one_or_none()
    )

    lines = [
        WeeklyReportLine(
            id=r.id,
            week_start=r.week_start,
            week_end=r.week_end,
            host_hours=float(r.host_hours or 0),
            lender_hours=float(r.lender_hours or 0),
            host_status=r.host_status,
            lender_status=r.lender_status,
            locked=bool(r.locked),
        )
        for r in reports
    ]
    own_weeks = [line for line in lines if line.week_start >= start]

    return MonthSummary(
        staff_id=staff_id,
        month=month_key(start),
        totals=monthly_totals(entries, expenses, start),
        weekly_reports=lines,
        declared_host_hours=round(sum(line.host_hours for line in own_weeks), 2),
        declared_lender_hours=round(sum(line.lender_hours for line in own_weeks), 2),
        closure_status=None if closure is None else closure.status,
    )
