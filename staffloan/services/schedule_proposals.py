from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from staffloan.core.authorization import EntityType, ensure_can_transition
from staffloan.core.errors import ValidationError
from staffloan.core.roles import Role
from staffloan.core.states import ProposalEventKind, ProposalStatus
from staffloan.models.schedule_proposal import ScheduleProposal, ScheduleProposalEvent
from staffloan.services import store
from staffloan.services.audit import record_audit
from staffloan.services.context import WorkflowContext
from staffloan.services.derivations import duration_hours, parse_time

logger = logging.getLogger(__name__)

_ENTITY = EntityType.SCHEDULE_PROPOSAL


def append_event(
    db: Session,
    proposal_id: str,
    kind: ProposalEventKind,
    actor_id: str,
    comment: Optional[str] = None,
) -> ScheduleProposalEvent:
    """The only way history grows; events are never updated or removed."""
    kind = ProposalEventKind(kind)
    next_seq = db.execute(
        select(func.coalesce(func.max(ScheduleProposalEvent.seq), 0) + 1)
        .where(ScheduleProposalEvent.proposal_id == str(proposal_id))
    ).scalar_one()

    event = ScheduleProposalEvent(
        proposal_id=str(proposal_id),
        seq=int(next_seq),
        kind=kind.value,
        actor_id=str(actor_id),
        comment=comment,
    )
    db.add(event)
    db.flush()
    return event


def propose(
    ctx: WorkflowContext,
    *,
    staff_id: str,
    day: date,
    start_time,
    end_time,
    host_site_id: str,
) -> ScheduleProposal:
    ensure_can_transition(_ENTITY, "propose", ctx.actor)

    if not staff_id:
        raise ValidationError("staff_id is required")
    if not host_site_id:
        raise ValidationError("host_site_id is required")
    duration_hours(start_time, end_time)

    proposal = store.insert(
        ctx.db,
        ScheduleProposal(
            staff_id=str(staff_id),
            date=day,
            start_time=parse_time(start_time),
            end_time=parse_time(end_time),
            host_site_id=str(host_site_id),
            status=ProposalStatus.PROPOSED.value,
        ),
    )
    append_event(ctx.db, proposal.id, ProposalEventKind.PROPOSED, ctx.actor_id)
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=ScheduleProposal.__tablename__,
        record_id=proposal.id,
        action="insert",
        new_values={
            "staff_id": proposal.staff_id,
            "date": proposal.date,
            "start_time": proposal.start_time,
            "end_time": proposal.end_time,
            "status": proposal.status,
        },
    )

    logger.info(
        "Schedule proposal created",
        extra={"proposal_id": proposal.id, "staff_id": proposal.staff_id, "actor_id": ctx.actor_id},
    )
    return proposal


def _decide(ctx: WorkflowContext, proposal_id: str, status: ProposalStatus, comment: Optional[str]) -> ScheduleProposal:
    action = "approve" if status is ProposalStatus.APPROVED else "reject"
    ensure_can_transition(_ENTITY, action, ctx.actor)

    now = ctx.now()
    proposal = store.conditional_update(
        ctx.db,
        ScheduleProposal,
        proposal_id,
        expected={"status": ProposalStatus.PROPOSED.value},
        values={
            "status": status.value,
            "validated_by": ctx.actor_id,
            "validated_at": now,
            "validation_comment": comment,
        },
    )
    append_event(ctx.db, proposal.id, ProposalEventKind(status.value), ctx.actor_id, comment)
    record_audit(
        ctx.db,
        actor_id=ctx.actor_id,
        table_name=ScheduleProposal.__tablename__,
        record_id=proposal.id,
        action=action,
        old_values={"status": ProposalStatus.PROPOSED.value},
        new_values={"status": status.value, "validation_comment": comment},
    )

    logger.info(
        "Schedule proposal decided",
        extra={"proposal_id": proposal.id, "status": status.value, "actor_id": ctx.actor_id},
    )
    return proposal


def approve(ctx: WorkflowContext, proposal_id: str, comment: Optional[str] = None) -> ScheduleProposal:
    return _decide(ctx, proposal_id, ProposalStatus.APPROVED, comment)


def reject(ctx: WorkflowContext, proposal_id: str, comment: Optional[str] = None) -> ScheduleProposal:
    return _decide(ctx, proposal_id, ProposalStatus.REJECTED, comment)


def approved_plan_for(db: Session, staff_id: str, day: date) -> Optional[ScheduleProposal]:
    """Most recently approved slot for the staff member on that day, if any."""
    return (
        db.query(ScheduleProposal)
        .filter(
            ScheduleProposal.staff_id == str(staff_id),
            ScheduleProposal.date == day,
            ScheduleProposal.status == ProposalStatus.APPROVED.value,
        )
        .order_by(ScheduleProposal.validated_at.desc(), ScheduleProposal.created_at.desc())
        .first()
    )


def list_proposals(
    ctx: WorkflowContext,
    *,
    staff_id: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[ScheduleProposal]:
    q = ctx.db.query(ScheduleProposal)

    if ctx.role is Role.STAFF:
        q = q.filter(ScheduleProposal.staff_id == ctx.actor_id)
    elif staff_id is not None:
        q = q.filter(ScheduleProposal.staff_id == str(staff_id))

    if status is not None:
        q = q.filter(ScheduleProposal.status == str(status))
    if date_from is not None:
        q = q.filter(ScheduleProposal.date >= date_from)
    if date_to is not None:
        q = q.filter(ScheduleProposal.date <= date_to)

    return (
        q.order_by(ScheduleProposal.date.asc(), ScheduleProposal.start_time.asc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )
