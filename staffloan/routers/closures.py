from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from staffloan.core.authorization import EntityType
from staffloan.core.roles import Actor
from staffloan.deps.auth import require_auth
from staffloan.deps.workflow import workflow_session
from staffloan.schemas.monthly_closure import (
    ClosureOpenRequest,
    ClosureReportRequest,
    MonthlyClosureResponse,
    MonthSummaryResponse,
)
from staffloan.services import monthly_closures, workflow_service

router = APIRouter(prefix="/closures", tags=["Monthly Closures"])


@router.post("", response_model=MonthlyClosureResponse)
def open_closure(payload: ClosureOpenRequest, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        closure = monthly_closures.get_or_create(ctx, payload.month, payload.staff_id)
        return MonthlyClosureResponse.model_validate(closure)


@router.get("", response_model=List[MonthlyClosureResponse])
def list_closures(
    actor: Actor = Depends(require_auth),
    staff_id: Optional[str] = None,
    month: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    status: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    with workflow_session(actor) as ctx:
        rows = monthly_closures.list_closures(
            ctx,
            staff_id=staff_id,
            month=month,
            status=status,
            limit=limit,
            offset=offset,
        )
        return [MonthlyClosureResponse.model_validate(r) for r in rows]


@router.get("/pending", response_model=List[MonthlyClosureResponse])
def pending_closures(actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        rows = workflow_service.pending_for_role(ctx, EntityType.MONTHLY_CLOSURE)
        return [MonthlyClosureResponse.model_validate(r) for r in rows]


@router.get("/summary", response_model=MonthSummaryResponse)
def month_summary(
    month: str = Query(..., pattern=r"^\d{4}-\d{2}$"),
    staff_id: Optional[str] = None,
    actor: Actor = Depends(require_auth),
):
    with workflow_session(actor) as ctx:
        summary = workflow_service.month_summary(ctx, staff_id, month)
        return MonthSummaryResponse.model_validate(summary)


@router.post("/{closure_id}/sign", response_model=MonthlyClosureResponse)
def sign_closure(closure_id: str, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        closure = monthly_closures.sign(ctx, closure_id)
        return MonthlyClosureResponse.model_validate(closure)


@router.post("/{closure_id}/report", response_model=MonthlyClosureResponse)
def attach_closure_report(
    closure_id: str,
    payload: ClosureReportRequest,
    actor: Actor = Depends(require_auth),
):
    with workflow_session(actor) as ctx:
        closure = monthly_closures.attach_report(ctx, closure_id, payload.report_url)
        return MonthlyClosureResponse.model_validate(closure)
