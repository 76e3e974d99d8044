from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from staffloan.core.authorization import require_role
from staffloan.core.roles import Actor, Role
from staffloan.database import SessionLocal
from staffloan.deps.auth import require_auth
from staffloan.models.profile import Profile
from staffloan.schemas.profile import ProfileCreate, ProfileResponse
from staffloan.services.audit import record_audit

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post("", response_model=ProfileResponse)
def create_profile(
    payload: ProfileCreate,
    actor: Actor = Depends(require_role(Role.LENDER)),
):
    db = SessionLocal()
    try:
        row = Profile(
            id=payload.id,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role.value,
            site_id=payload.site_id,
        )
        db.add(row)
        db.flush()
        record_audit(
            db,
            actor_id=actor.actor_id,
            table_name=Profile.__tablename__,
            record_id=row.id,
            action="insert",
            new_values={"email": row.email, "role": row.role},
        )
        db.commit()
        db.refresh(row)
        return row
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Profile id or email already exists") from exc
    finally:
        db.close()


@router.get("", response_model=List[ProfileResponse])
def list_profiles(
    role: Role | None = None,
    _actor: Actor = Depends(require_auth),
):
    db = SessionLocal()
    try:
        q = db.query(Profile)
        if role is not None:
            q = q.filter(Profile.role == role.value)
        return q.order_by(Profile.last_name.asc(), Profile.first_name.asc()).all()
    finally:
        db.close()


@router.get("/{profile_id}", response_model=ProfileResponse)
def get_profile(
    profile_id: str,
    _actor: Actor = Depends(require_auth),
):
    db = SessionLocal()
    try:
        row = db.get(Profile, str(profile_id))
        if row is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return row
    finally:
        db.close()
