from enum import Enum
from typing import FrozenSet, Tuple

from fastapi import Depends, HTTPException, Request

from staffloan.core.errors import AuthorizationError
from staffloan.core.roles import Actor, Role
from staffloan.deps.auth import require_auth


class EntityType(Enum):
    SCHEDULE_PROPOSAL = "schedule_proposal"
    TIME_ENTRY = "time_entry"
    EXPENSE = "expense"
    WEEKLY_REPORT = "weekly_report"
    MONTHLY_CLOSURE = "monthly_closure"


_E = EntityType
_R = Role

# (entity, action) -> roles allowed. Anything absent is denied.
_TRANSITIONS: dict[Tuple[EntityType, str], FrozenSet[Role]] = {
    (_E.SCHEDULE_PROPOSAL, "propose"): frozenset({_R.HOST, _R.LENDER}),
    (_E.SCHEDULE_PROPOSAL, "approve"): frozenset({_R.LENDER}),
    (_E.SCHEDULE_PROPOSAL, "reject"): frozenset({_R.LENDER}),

    (_E.TIME_ENTRY, "declare"): frozenset({_R.STAFF, _R.LENDER}),
    (_E.TIME_ENTRY, "approve_host"): frozenset({_R.HOST}),
    (_E.TIME_ENTRY, "reject_host"): frozenset({_R.HOST}),
    (_E.TIME_ENTRY, "approve_lender"): frozenset({_R.LENDER}),
    (_E.TIME_ENTRY, "reject_lender"): frozenset({_R.LENDER}),
    (_E.TIME_ENTRY, "delete"): frozenset({_R.STAFF}),

    (_E.EXPENSE, "declare"): frozenset({_R.STAFF, _R.LENDER}),
    (_E.EXPENSE, "approve_host"): frozenset({_R.HOST}),
    (_E.EXPENSE, "reject_host"): frozenset({_R.HOST}),
    (_E.EXPENSE, "approve_lender"): frozenset({_R.LENDER}),
    (_E.EXPENSE, "reject_lender"): frozenset({_R.LENDER}),
    (_E.EXPENSE, "delete"): frozenset({_R.STAFF}),

    (_E.WEEKLY_REPORT, "submit"): frozenset({_R.STAFF}),
    (_E.WEEKLY_REPORT, "update"): frozenset({_R.STAFF}),
    (_E.WEEKLY_REPORT, "delete"): frozenset({_R.STAFF}),
    (_E.WEEKLY_REPORT, "decide_host"): frozenset({_R.HOST}),
    (_E.WEEKLY_REPORT, "decide_lender"): frozenset({_R.LENDER}),

    (_E.MONTHLY_CLOSURE, "open"): frozenset({_R.STAFF, _R.LENDER}),
    (_E.MONTHLY_CLOSURE, "sign_staff"): frozenset({_R.STAFF}),
    (_E.MONTHLY_CLOSURE, "sign_host"): frozenset({_R.HOST}),
    (_E.MONTHLY_CLOSURE, "sign_lender"): frozenset({_R.LENDER}),
    (_E.MONTHLY_CLOSURE, "attach_report"): frozenset({_R.LENDER}),
}


def can_transition(entity_type, action: str, role) -> bool:
    """Pure lookup; unknown entity types, actions or roles are denied."""
    try:
        entity_type = EntityType(entity_type)
        role = Role(role)
    except ValueError:
        return False
    allowed = _TRANSITIONS.get((entity_type, str(action)))
    if allowed is None:
        return False
    return role in allowed


def ensure_can_transition(entity_type: EntityType, action: str, actor: Actor) -> None:
    if not can_transition(entity_type, action, actor.role):
        raise AuthorizationError(
            f"Role {actor.role.value} may not {action} a {EntityType(entity_type).value}"
        )


def ensure_owner(actor: Actor, staff_id: str) -> None:
    """Staff members may only act on their own records."""
    if actor.role is Role.STAFF and str(actor.actor_id) != str(staff_id):
        raise AuthorizationError("Staff members may only act on their own records")


def require_role(*roles: Role):
    def dependency(request: Request, actor: Actor = Depends(require_auth)):
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role")
        request.state.role = actor.role.value
        return actor

    return dependency
