from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from staffloan.core.authorization import EntityType
from staffloan.core.roles import Actor
from staffloan.core.states import SideAction
from staffloan.deps.auth import require_auth
from staffloan.deps.workflow import workflow_session
from staffloan.schemas.time_entry import TimeEntryCreate, TimeEntryResponse
from staffloan.services import time_entries, workflow_service

router = APIRouter(
    prefix="/time_entries",
    tags=["Time Entries"],
)


@router.post("", response_model=TimeEntryResponse)
def declare_time_entry(payload: TimeEntryCreate, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        entry = time_entries.declare(
            ctx,
            day=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            site_id=payload.site_id,
            comment=payload.comment,
            staff_id=payload.staff_id,
        )
        return TimeEntryResponse.model_validate(entry)


@router.get("", response_model=list[TimeEntryResponse])
def list_time_entries(
    actor: Actor = Depends(require_auth),
    staff_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    with workflow_session(actor) as ctx:
        rows = time_entries.list_entries(
            ctx,
            staff_id=staff_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return [TimeEntryResponse.model_validate(r) for r in rows]


@router.get("/pending", response_model=list[TimeEntryResponse])
def pending_time_entries(actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        rows = workflow_service.pending_for_role(ctx, EntityType.TIME_ENTRY)
        return [TimeEntryResponse.model_validate(r) for r in rows]


@router.post("/{entry_id}/{action}", response_model=TimeEntryResponse)
def decide_time_entry(entry_id: str, action: SideAction, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        entry = time_entries.decide(ctx, entry_id, action.side, action.decision)
        return TimeEntryResponse.model_validate(entry)


@router.delete("/{entry_id}", status_code=204)
def delete_time_entry(entry_id: str, actor: Actor = Depends(require_auth)):
    with workflow_session(actor) as ctx:
        time_entries.delete(ctx, entry_id)
    return Response(status_code=204)
