import os

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from staffloan.core.roles import Role
from staffloan.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])

# Token minting stands in for the identity provider outside production.
_TOKEN_ENVIRONMENTS = {"dev", "local", "test"}


class TokenRequest(BaseModel):
    user_id: str = Field(min_length=1)
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


@router.post("/token", response_model=TokenResponse)
def issue_token(payload: TokenRequest):
    if os.getenv("ENV", "dev").lower() not in _TOKEN_ENVIRONMENTS:
        raise HTTPException(status_code=404, detail="Not Found")

    try:
        token = create_access_token(payload.user_id, payload.role.value)
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return TokenResponse(access_token=token, role=payload.role)
