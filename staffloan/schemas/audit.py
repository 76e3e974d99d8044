from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: Optional[str]
    table_name: str
    record_id: str
    action: str
    old_values: Optional[dict[str, Any]]
    new_values: Optional[dict[str, Any]]
    created_at: datetime
