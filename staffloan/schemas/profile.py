from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from staffloan.core.roles import Role


class ProfileCreate(BaseModel):
    id: str = Field(min_length=1, description="Same identifier as the token subject.")
    email: str = Field(min_length=3)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: Role
    site_id: Optional[str] = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    site_id: Optional[str]
    created_at: datetime
