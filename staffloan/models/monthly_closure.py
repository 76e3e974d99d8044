from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.schema import UniqueConstraint

from staffloan.database import Base
from staffloan.models._common import new_id, utcnow

# Signatures are collected staff -> host -> lender; status names the first one missing.
STATUS_MATCHES_SIGNATURES = (
    "(status = 'awaiting_staff' AND NOT signature_staff AND NOT signature_host AND NOT signature_lender)"
    " OR (status = 'awaiting_host' AND signature_staff AND NOT signature_host AND NOT signature_lender)"
    " OR (status = 'awaiting_lender' AND signature_staff AND signature_host AND NOT signature_lender)"
    " OR (status = 'closed' AND signature_staff AND signature_host AND signature_lender)"
)


class MonthlyClosure(Base):
    __tablename__ = "monthly_closures"

    id = Column(String, primary_key=True, default=new_id)
    month = Column(String(7), nullable=False, index=True)  # YYYY-MM
    staff_id = Column(String, nullable=False, index=True)

    signature_staff = Column(Boolean, nullable=False, default=False)
    signature_host = Column(Boolean, nullable=False, default=False)
    signature_lender = Column(Boolean, nullable=False, default=False)

    status = Column(String, nullable=False, default="awaiting_staff", index=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    report_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("month", "staff_id", name="uq_monthly_closures_month_staff"),
        CheckConstraint(
            "(status = 'closed' AND closed_at IS NOT NULL) OR (status <> 'closed' AND closed_at IS NULL)",
            name="ck_monthly_closures_closed_at_consistent",
        ),
        CheckConstraint(STATUS_MATCHES_SIGNATURES, name="ck_monthly_closures_status_matches_signatures"),
    )
