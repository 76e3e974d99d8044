from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from staffloan.core.authorization import EntityType, ensure_can_transition
from staffloan.core.errors import ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import Allocation, ApprovalStatus, Decision, Side
from staffloan.models.expense import Expense
from staffloan.services import dual_approval, store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import effective_ratio, ventilate

logger = logging.getLogger(__name__)

_ENTITY = EntityType.EXPENSE

DEFAULT_RATIO = 0.5


def declare(
    ctx: WorkflowContext,
    *,
    day: date,
    category: str,
    amount_cents: int,
    allocation: Allocation = Allocation.MIXED,
    ventilation_ratio: float = DEFAULT_RATIO,
    description: Optional[str] = None,
    attachment_url: Optional[str] = None,
    staff_id: Optional[str] = None,
) -> Expense:
    ensure_can_transition(_ENTITY, "declare", ctx.actor)
    target_staff_id = dual_approval.resolve_declared_staff(ctx, staff_id)

    if not category:
        raise ValidationError("category is required")

    lender_share, host_share = ventilate(amount_cents, allocation, ventilation_ratio)
    allocation = Allocation(allocation)

    expense = store.insert(
        ctx.db,
        Expense(
            staff_id=target_staff_id,
            date=day,
            category=str(category),
            description=description,
            amount_cents=int(amount_cents),
            attachment_url=attachment_url,
            allocation=allocation.value,
            ventilation_ratio=effective_ratio(allocation, ventilation_ratio),
            lender_share_cents=lender_share,
            host_share_cents=host_share,
            **dual_approval.initial_sides(ctx),
        ),
    )
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=Expense.__tablename__,
        record_id=expense.id,
        action="insert",
        new_values={
            "staff_id": expense.staff_id,
            "date": expense.date,
            "amount_cents": expense.amount_cents,
            "allocation": expense.allocation,
            "lender_share_cents": expense.lender_share_cents,
            "host_share_cents": expense.host_share_cents,
        },
    )

    logger.info(
        "Expense declared",
        extra={"expense_id": expense.id, "staff_id": expense.staff_id, "amount_cents": expense.amount_cents},
    )
    return expense


def decide(ctx: WorkflowContext, expense_id: str, side: Side, decision: Decision) -> Expense:
    return dual_approval.decide(ctx, Expense, _ENTITY, expense_id, side, decision)


def approve_host(ctx: WorkflowContext, expense_id: str) -> Expense:
    return decide(ctx, expense_id, Side.HOST, Decision.APPROVE)


def reject_host(ctx: WorkflowContext, expense_id: str) -> Expense:
    return decide(ctx, expense_id, Side.HOST, Decision.REJECT)


def approve_lender(ctx: WorkflowContext, expense_id: str) -> Expense:
    return decide(ctx, expense_id, Side.LENDER, Decision.APPROVE)


def reject_lender(ctx: WorkflowContext, expense_id: str) -> Expense:
    return decide(ctx, expense_id, Side.LENDER, Decision.REJECT)


def delete(ctx: WorkflowContext, expense_id: str) -> None:
    dual_approval.delete_pending(ctx, Expense, _ENTITY, expense_id)


def list_expenses(
    ctx: WorkflowContext,
    *,
    staff_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Expense]:
    q = ctx.db.query(Expense)

    if ctx.role is Role.STAFF:
        q = q.filter(Expense.staff_id == ctx.actor_id)
    elif staff_id is not None:
        q = q.filter(Expense.staff_id == str(staff_id))

    if ctx.role is Role.ACCOUNTING:
        q = q.filter(Expense.lender_status == ApprovalStatus.APPROVED.value)

    if date_from is not None:
        q = q.filter(Expense.date >= date_from)
    if date_to is not None:
        q = q.filter(Expense.date <= date_to)

    return (
        q.order_by(Expense.date.desc(), Expense.created_at.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )
