from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from staffloan.core.authorization import EntityType
from staffloan.core.roles import Actor
from staffloan.deps.auth import require_auth
from staffloan.deps.workflow import workflow_session
from staffloan.schemas.weekly_report import (
    ConsistencyAlertResponse,
    WeeklyReportCreate,
    WeeklyReportDecision,
    WeeklyReportResponse,
    WeeklyReportUpdate,
)
from staffloan.services import weekly_reports, workflow_service

router = APIRouter(prefix="/weekly_reports", tags=["Weekly Reports"])


@router.post("", response_model=WeeklyReportResponse)
def submit_weekly_report(payload: WeeklyReportCreate, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        report = weekly_reports.submit(ctx, **payload.model_dump())
        return WeeklyReportResponse.model_validate(report)


@router.get("", response_model=List[WeeklyReportResponse])
def list_weekly_reports(
    actor: Actor = Depends(require_auth),
    staff_id: Optional[str] = None,
    host_status: Optional[str] = None,
    lender_status: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    with workflow_session(actor) as ctx:
        rows = weekly_reports.list_reports(
            ctx,
            staff_id=staff_id,
            host_status=host_status,
            lender_status=lender_status,
            limit=limit,
            offset=offset,
        )
        return [WeeklyReportResponse.model_validate(r) for r in rows]


@router.get("/pending", response_model=List[WeeklyReportResponse])
def pending_weekly_reports(actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        rows = workflow_service.pending_for_role(ctx, EntityType.WEEKLY_REPORT)
        return [WeeklyReportResponse.model_validate(r) for r in rows]


@router.patch("/{report_id}", response_model=WeeklyReportResponse)
def update_weekly_report(
    report_id: str,
    payload: WeeklyReportUpdate,
    actor: Actor = Depends(require_auth),
):
    with workflow_session(actor) as ctx:
        report = weekly_reports.update_report(ctx, report_id, payload.model_dump(exclude_unset=True))
        return WeeklyReportResponse.model_validate(report)


@router.delete("/{report_id}", status_code=204)
def delete_weekly_report(report_id: str, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        weekly_reports.delete_report(ctx, report_id)
    return Response(status_code=204)


@router.post("/{report_id}/decide", response_model=WeeklyReportResponse)
def decide_weekly_report(
    report_id: str,
    payload: WeeklyReportDecision,
    actor: Actor = Depends(require_auth),
):
    with workflow_session(actor) as ctx:
        report = weekly_reports.decide(ctx, report_id, payload.decision, payload.comment)
        return WeeklyReportResponse.model_validate(report)


@router.get("/{report_id}/alerts", response_model=List[ConsistencyAlertResponse])
def list_weekly_report_alerts(
    report_id: str,
    include_resolved: bool = False,
    actor: Actor = Depends(require_auth),
):
    with workflow_session(actor) as ctx:
        rows = weekly_reports.list_alerts(ctx, report_id, include_resolved=include_resolved)
        return [ConsistencyAlertResponse.model_validate(r) for r in rows]
