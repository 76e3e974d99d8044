from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from staffloan.core.authorization import EntityType
from staffloan.core.roles import Actor
from staffloan.deps.auth import require_auth
from staffloan.deps.workflow import workflow_session
from staffloan.schemas.schedule_proposal import (
    ProposalDecisionRequest,
    ScheduleProposalCreate,
    ScheduleProposalResponse,
)
from staffloan.services import schedule_proposals, workflow_service

router = APIRouter(prefix="/schedule_proposals", tags=["Schedule Proposals"])


@router.post("", response_model=ScheduleProposalResponse)
def create_proposal(payload: ScheduleProposalCreate, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        row = schedule_proposals.propose(
            ctx,
            staff_id=payload.staff_id,
            day=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            host_site_id=payload.host_site_id,
        )
        return ScheduleProposalResponse.model_validate(row)


@router.get("", response_model=List[ScheduleProposalResponse])
def list_proposals(
    actor: Actor = Depends(require_auth),
    staff_id: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    with workflow_session(actor) as ctx:
        rows = schedule_proposals.list_proposals(
            ctx,
            staff_id=staff_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return [ScheduleProposalResponse.model_validate(r) for r in rows]


@router.get("/pending", response_model=List[ScheduleProposalResponse])
def pending_proposals(actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        rows = workflow_service.pending_for_role(ctx, EntityType.SCHEDULE_PROPOSAL)
        return [ScheduleProposalResponse.model_validate(r) for r in rows]


@router.post("/{proposal_id}/approve", response_model=ScheduleProposalResponse)
def approve_proposal(
    proposal_id: str,
    payload: Optional[ProposalDecisionRequest] = None,
    actor: Actor = Depends(require_auth),
):
    comment = None if payload is None else payload.comment
    with workflow_session(actor) as ctx:
        row = schedule_proposals.approve(ctx, proposal_id, comment)
        return ScheduleProposalResponse.model_validate(row)


@router.post("/{proposal_id}/reject", response_model=ScheduleProposalResponse)
def reject_proposal(
    proposal_id: str,
    payload: Optional[ProposalDecisionRequest] = None,
    actor: Actor = Depends(require_auth),
):
    comment = None if payload is None else payload.comment
    with workflow_session(actor) as ctx:
        row = schedule_proposals.reject(ctx, proposal_id, comment)
        return ScheduleProposalResponse.model_validate(row)
