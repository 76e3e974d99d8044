from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, Numeric, String, Text
from sqlalchemy.orm import relationship

from staffloan.database import Base
from staffloan.models._common import new_id, utcnow


class WeeklyReport(Base):
    __tablename__ = "weekly_reports"

    id = Column(String, primary_key=True, default=new_id)
    staff_id = Column(String, nullable=False, index=True)

    week_start = Column(Date, nullable=False, index=True)  # Monday
    week_end = Column(Date, nullable=False)  # Sunday

    host_activity = Column(Text, nullable=False, default="")
    host_hours = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)
    lender_activity = Column(Text, nullable=False, default="")
    lender_hours = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)
    comment = Column(Text, nullable=True)

    host_status = Column(String, nullable=False, default="pending", index=True)
    host_comment = Column(Text, nullable=True)
    host_decided_by = Column(String, nullable=True)
    host_decided_at = Column(DateTime(timezone=True), nullable=True)

    lender_status = Column(String, nullable=False, default="pending", index=True)
    lender_comment = Column(Text, nullable=True)
    lender_decided_by = Column(String, nullable=True)
    lender_decided_at = Column(DateTime(timezone=True), nullable=True)

    locked = Column(Boolean, nullable=False, default=False)
    declared_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    alerts = relationship("ConsistencyAlert", viewonly=True, order_by="ConsistencyAlert.created_at")

    __table_args__ = (
        CheckConstraint("host_hours >= 0 AND lender_hours >= 0", name="ck_weekly_reports_hours_nonnegative"),
        CheckConstraint(
            "host_status in ('pending','approved','rejected')",
            name="ck_weekly_reports_host_status_valid",
        ),
        CheckConstraint(
            "lender_status in ('pending','approved','rejected')",
            name="ck_weekly_reports_lender_status_valid",
        ),
    )
