from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from staffloan.database import Base
from staffloan.models._common import new_id, utcnow


class ScheduleProposal(Base):
    __tablename__ = "schedule_proposals"

    id = Column(String, primary_key=True, default=new_id)
    staff_id = Column(String, nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    host_site_id = Column(String, nullable=False)

    status = Column(String, nullable=False, default="proposed", index=True)
    validation_comment = Column(Text, nullable=True)
    validated_by = Column(String, nullable=True)
    validated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Read-only view; new events go through services.schedule_proposals.append_event.
    history = relationship(
        "ScheduleProposalEvent",
        order_by="ScheduleProposalEvent.seq",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_schedule_proposals_start_before_end"),
        CheckConstraint(
            "status in ('proposed','approved','rejected')",
            name="ck_schedule_proposals_status_valid",
        ),
    )


class ScheduleProposalEvent(Base):
    __tablename__ = "schedule_proposal_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    proposal_id = Column(
        String,
        ForeignKey("schedule_proposals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    seq = Column(Integer, nullable=False)
    kind = Column(String, nullable=False)
    actor_id = Column(String, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("proposal_id", "seq", name="uq_schedule_proposal_events_seq"),
        CheckConstraint(
            "kind in ('proposed','approved','rejected')",
            name="ck_schedule_proposal_events_kind_valid",
        ),
    )
