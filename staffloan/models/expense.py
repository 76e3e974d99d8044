from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, Numeric, String, Text

from staffloan.database import Base
from staffloan.models._common import new_id, utcnow


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=new_id)
    staff_id = Column(String, nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount_cents = Column(Integer, nullable=False)
    attachment_url = Column(String, nullable=True)

    allocation = Column(String, nullable=False, default="mixed")
    ventilation_ratio = Column(Numeric(4, 3, asdecimal=False), nullable=False, default=0.5)
    lender_share_cents = Column(Integer, nullable=False)
    host_share_cents = Column(Integer, nullable=False)

    host_status = Column(String, nullable=False, default="pending", index=True)
    host_validated_by = Column(String, nullable=True)
    host_validated_at = Column(DateTime(timezone=True), nullable=True)

    lender_status = Column(String, nullable=False, default="pending", index=True)
    lender_validated_by = Column(String, nullable=True)
    lender_validated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_expenses_amount_nonnegative"),
        CheckConstraint(
            "ventilation_ratio >= 0 AND ventilation_ratio <= 1",
            name="ck_expenses_ratio_range",
        ),
        CheckConstraint(
            "lender_share_cents + host_share_cents = amount_cents",
            name="ck_expenses_shares_sum_to_amount",
        ),
        CheckConstraint(
            "allocation in ('lender','host','mixed')",
            name="ck_expenses_allocation_valid",
        ),
        CheckConstraint(
            "host_status in ('pending','approved','rejected')",
            name="ck_expenses_host_status_valid",
        ),
        CheckConstraint(
            "lender_status in ('pending','approved','rejected')",
            name="ck_expenses_lender_status_valid",
        ),
    )
