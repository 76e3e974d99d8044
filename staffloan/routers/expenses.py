from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from staffloan.core.authorization import EntityType
from staffloan.core.roles import Actor
from staffloan.core.states import SideAction
from staffloan.deps.auth import require_auth
from staffloan.deps.workflow import workflow_session
from staffloan.schemas.expense import ExpenseCreate, ExpenseResponse
from staffloan.services import expenses, workflow_service

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.post("", response_model=ExpenseResponse)
def declare_expense(payload: ExpenseCreate, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        expense = expenses.declare(
            ctx,
            day=payload.date,
            category=payload.category,
            amount_cents=payload.amount_cents,
            allocation=payload.allocation,
            ventilation_ratio=payload.ventilation_ratio,
            description=payload.description,
            attachment_url=payload.attachment_url,
            staff_id=payload.staff_id,
        )
        return ExpenseResponse.model_validate(expense)


@router.get("", response_model=list[ExpenseResponse])
def list_expenses(
    actor: Actor = Depends(require_auth),
    staff_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    with workflow_session(actor) as ctx:
        rows = expenses.list_expenses(
            ctx,
            staff_id=staff_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return [ExpenseResponse.model_validate(r) for r in rows]


@router.get("/pending", response_model=list[ExpenseResponse])
def pending_expenses(actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        rows = workflow_service.pending_for_role(ctx, EntityType.EXPENSE)
        return [ExpenseResponse.model_validate(r) for r in rows]


@router.post("/{expense_id}/{action}", response_model=ExpenseResponse)
def decide_expense(expense_id: str, action: SideAction, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        expense = expenses.decide(ctx, expense_id, action.side, action.decision)
        return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", status_code=204)
def delete_expense(expense_id: str, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        expenses.delete(ctx, expense_id)
    return Response(status_code=204)
