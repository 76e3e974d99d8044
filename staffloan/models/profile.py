from sqlalchemy import CheckConstraint, Column, DateTime, String

from staffloan.database import Base
from staffloan.models._common import utcnow


class Profile(Base):
    __tablename__ = "profiles"

    # Same identifier as the token subject.
    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(String, nullable=False, index=True)
    site_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("role in ('staff','host','lender','accounting')", name="ck_profiles_role_valid"),
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
