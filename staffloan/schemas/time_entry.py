import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TimeEntryCreate(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    site_id: str
    comment: Optional[str] = None
    # Only a lender declaring on a staff member's behalf sets this.
    staff_id: Optional[str] = None


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    staff_id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    site_id: str
    comment: Optional[str]
    variance_hours: float
    host_status: str
    host_validated_by: Optional[str]
    host_validated_at: Optional[dt.datetime]
    lender_status: str
    lender_validated_by: Optional[str]
    lender_validated_at: Optional[dt.datetime]
    created_at: dt.datetime
