import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ScheduleProposalCreate(BaseModel):
    staff_id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    host_site_id: str


class ProposalDecisionRequest(BaseModel):
    comment: Optional[str] = None


class ProposalEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seq: int
    kind: str
    actor_id: str
    comment: Optional[str]
    created_at: dt.datetime


class ScheduleProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    staff_id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    host_site_id: str
    status: str
    validation_comment: Optional[str]
    validated_by: Optional[str]
    validated_at: Optional[dt.datetime]
    history: list[ProposalEventResponse] = []
