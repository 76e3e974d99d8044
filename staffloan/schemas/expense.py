import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from staffloan.core.states import Allocation


class ExpenseCreate(BaseModel):
    date: dt.date
    category: str = Field(min_length=1)
    amount_cents: int = Field(ge=0)
    allocation: Allocation = Allocation.MIXED
    ventilation_ratio: float = Field(default=0.5, ge=0, le=1)
    description: Optional[str] = None
    attachment_url: Optional[str] = None
    staff_id: Optional[str] = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    staff_id: str
    date: dt.date
    category: str
    description: Optional[str]
    amount_cents: int
    attachment_url: Optional[str]
    allocation: str
    ventilation_ratio: float
    lender_share_cents: int
    host_share_cents: int
    host_status: str
    host_validated_by: Optional[str]
    host_validated_at: Optional[dt.datetime]
    lender_status: str
    lender_validated_by: Optional[str]
    lender_validated_at: Optional[dt.datetime]
    created_at: dt.datetime
