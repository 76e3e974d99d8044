import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClosureOpenRequest(BaseModel):
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    staff_id: Optional[str] = None


class ClosureReportRequest(BaseModel):
    report_url: str = Field(min_length=1)


class MonthlyClosureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    month: str
    staff_id: str
    signature_staff: bool
    signature_host: bool
    signature_lender: bool
    status: str
    closed_at: Optional[dt.datetime]
    report_url: Optional[str]


class MonthlyTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_hours: float
    total_amount_cents: int
    lender_share_cents: int
    host_share_cents: int
    time_entry_count: int
    expense_count: int


class WeeklyReportLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    week_start: dt.date
    week_end: dt.date
    host_hours: float
    lender_hours: float
    host_status: str
    lender_status: str
    locked: bool


class MonthSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    staff_id: str
    month: str
    totals: MonthlyTotalsResponse
    weekly_reports: list[WeeklyReportLineResponse]
    declared_host_hours: float
    declared_lender_hours: float
    closure_status: Optional[str]
