from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class OutboxRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str
    idempotency_key: str
    payload: dict
    processed: bool
    retry_count: int
    last_error: Optional[str]
    created_at: datetime
    processed_at: Optional[datetime]


class OutboxListResponse(BaseModel):
    limit: int
    offset: int
    rows: list[OutboxRowResponse]


class OutboxProcessResponse(BaseModel):
    processed: int
    failed: int
