from datetime import datetime, timedelta, timezone
import os

import jwt

from staffloan.core.roles import Actor, Role

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET", "")
    if len(secret) < MIN_SECRET_LENGTH:
        raise ValueError(f"JWT_SECRET must be set to at least {MIN_SECRET_LENGTH} characters")
    return secret


def _token_lifetime() -> timedelta:
    hours = os.getenv("JWT_EXP_HOURS", "8")
    try:
        return timedelta(hours=float(hours))
    except ValueError:
        return timedelta(hours=8)


def create_access_token(user_id: str, role: str) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + _token_lifetime(),
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    """Decoded claims of a valid token; ValueError for anything expired, forged or incomplete."""
    try:
        claims = jwt.decode(
            token,
            _jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ValueError("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise ValueError("Invalid token") from exc

    if not str(claims["sub"]).strip():
        raise ValueError("Invalid token subject")
    return claims


def actor_from_claims(claims: dict) -> Actor:
    """Raises LookupError when the role claim names no known role."""
    try:
        role = Role(str(claims["role"]).lower())
    except ValueError as exc:
        raise LookupError(f"Unknown role: {claims['role']}") from exc
    return Actor(actor_id=str(claims["sub"]), role=role)
