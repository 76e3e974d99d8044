from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from staffloan.database import Base
from staffloan.models._common import utcnow


class ConsistencyAlert(Base):
    """Written by the external consistency checker; read-only here."""

    __tablename__ = "consistency_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    weekly_report_id = Column(
        String,
        ForeignKey("weekly_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
