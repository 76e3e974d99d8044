from fastapi import HTTPException, Request

from staffloan.core.roles import Actor
from staffloan.services.auth_service import actor_from_claims, verify_token

_UNAUTHORIZED = {"WWW-Authenticate": "Bearer"}


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization")
    if not header:
        raise HTTPException(status_code=401, detail="Missing Authorization header", headers=_UNAUTHORIZED)

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Expected a Bearer token", headers=_UNAUTHORIZED)

    return token.strip()


def require_auth(request: Request) -> Actor:
    """Resolve the acting user from the bearer token; every workflow route depends on this."""
    try:
        claims = verify_token(_bearer_token(request))
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc), headers=_UNAUTHORIZED) from exc

    try:
        actor = actor_from_claims(claims)
    except LookupError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc

    request.state.user_id = actor.actor_id
    request.state.role = actor.role.value
    return actor
