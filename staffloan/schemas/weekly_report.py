import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from staffloan.core.states import Decision


class WeeklyReportCreate(BaseModel):
    week_start: dt.date
    week_end: Optional[dt.date] = None
    host_activity: str = ""
    host_hours: float = Field(default=0, ge=0)
    lender_activity: str = ""
    lender_hours: float = Field(default=0, ge=0)
    comment: Optional[str] = None


class WeeklyReportUpdate(BaseModel):
    week_start: Optional[dt.date] = None
    week_end: Optional[dt.date] = None
    host_activity: Optional[str] = None
    host_hours: Optional[float] = Field(default=None, ge=0)
    lender_activity: Optional[str] = None
    lender_hours: Optional[float] = Field(default=None, ge=0)
    comment: Optional[str] = None


class WeeklyReportDecision(BaseModel):
    decision: Decision
    comment: Optional[str] = None


class WeeklyReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    staff_id: str
    week_start: dt.date
    week_end: dt.date
    host_activity: str
    host_hours: float
    lender_activity: str
    lender_hours: float
    comment: Optional[str]
    host_status: str
    host_comment: Optional[str]
    host_decided_by: Optional[str]
    host_decided_at: Optional[dt.datetime]
    lender_status: str
    lender_comment: Optional[str]
    lender_decided_by: Optional[str]
    lender_decided_at: Optional[dt.datetime]
    locked: bool
    declared_at: dt.datetime


class ConsistencyAlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    weekly_report_id: str
    category: str
    message: str
    resolved: bool
    created_at: dt.datetime
