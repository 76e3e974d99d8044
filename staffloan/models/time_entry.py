from sqlalchemy import CheckConstraint, Column, Date, DateTime, Numeric, String, Text, Time

from staffloan.database import Base
from staffloan.models._common import new_id, utcnow


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(String, primary_key=True, default=new_id)
    staff_id = Column(String, nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    site_id = Column(String, nullable=False)
    comment = Column(Text, nullable=True)

    host_status = Column(String, nullable=False, default="pending", index=True)
    host_validated_by = Column(String, nullable=True)
    host_validated_at = Column(DateTime(timezone=True), nullable=True)

    lender_status = Column(String, nullable=False, default="pending", index=True)
    lender_validated_by = Column(String, nullable=True)
    lender_validated_at = Column(DateTime(timezone=True), nullable=True)

    # Signed hours: actual duration minus the approved plan for the same staff/date.
    variance_hours = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_time_entries_start_before_end"),
        CheckConstraint(
            "host_status in ('pending','approved','rejected')",
            name="ck_time_entries_host_status_valid",
        ),
        CheckConstraint(
            "lender_status in ('pending','approved','rejected')",
            name="ck_time_entries_lender_status_valid",
        ),
    )
