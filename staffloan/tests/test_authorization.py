import pytest

from staffloan.core.authorization import EntityType, can_transition, ensure_can_transition, ensure_owner
from staffloan.core.errors import AuthorizationError
from staffloan.core.roles import Actor, Role


@pytest.mark.parametrize(
    "entity,action,role",
    [
        (EntityType.SCHEDULE_PROPOSAL, "propose", Role.HOST),
        (EntityType.SCHEDULE_PROPOSAL, "propose", Role.LENDER),
        (EntityType.SCHEDULE_PROPOSAL, "approve", Role.LENDER),
        (EntityType.TIME_ENTRY, "declare", Role.STAFF),
        (EntityType.TIME_ENTRY, "approve_host", Role.HOST),
        (EntityType.TIME_ENTRY, "reject_lender", Role.LENDER),
        (EntityType.EXPENSE, "approve_lender", Role.LENDER),
        (EntityType.WEEKLY_REPORT, "submit", Role.STAFF),
        (EntityType.WEEKLY_REPORT, "decide_host", Role.HOST),
        (EntityType.MONTHLY_CLOSURE, "sign_staff", Role.STAFF),
        (EntityType.MONTHLY_CLOSURE, "sign_host", Role.HOST),
        (EntityType.MONTHLY_CLOSURE, "sign_lender", Role.LENDER),
    ],
)
def test_allowed_transitions(entity, action, role):
    assert can_transition(entity, action, role) is True


@pytest.mark.parametrize(
    "entity,action,role",
    [
        (EntityType.SCHEDULE_PROPOSAL, "approve", Role.HOST),
        (EntityType.SCHEDULE_PROPOSAL, "propose", Role.STAFF),
        (EntityType.TIME_ENTRY, "approve_host", Role.LENDER),
        (EntityType.TIME_ENTRY, "approve_lender", Role.HOST),
        (EntityType.TIME_ENTRY, "approve_lender", Role.STAFF),
        (EntityType.EXPENSE, "declare", Role.ACCOUNTING),
        (EntityType.WEEKLY_REPORT, "decide_lender", Role.HOST),
        (EntityType.MONTHLY_CLOSURE, "sign_lender", Role.HOST),
        (EntityType.MONTHLY_CLOSURE, "sign_staff", Role.LENDER),
    ],
)
def test_denied_transitions(entity, action, role):
    assert can_transition(entity, action, role) is False


def test_unknown_triples_fail_closed():
    assert can_transition(EntityType.TIME_ENTRY, "teleport", Role.LENDER) is False
    assert can_transition("payroll_run", "approve", Role.LENDER) is False
    assert can_transition(EntityType.TIME_ENTRY, "approve_host", "admin") is False
    assert can_transition("time_entry", "approve_host", "host") is True


def test_accounting_cannot_mutate_anything():
    for (entity, action) in [
        (EntityType.TIME_ENTRY, "approve_lender"),
        (EntityType.EXPENSE, "reject_host"),
        (EntityType.WEEKLY_REPORT, "submit"),
        (EntityType.MONTHLY_CLOSURE, "open"),
    ]:
        assert can_transition(entity, action, Role.ACCOUNTING) is False


def test_ensure_can_transition_raises_authorization_error():
    with pytest.raises(AuthorizationError):
        ensure_can_transition(EntityType.TIME_ENTRY, "approve_lender", Actor("h1", Role.HOST))


def test_ensure_owner_only_restricts_staff():
    ensure_owner(Actor("s1", Role.STAFF), "s1")
    ensure_owner(Actor("l1", Role.LENDER), "s1")
    with pytest.raises(AuthorizationError):
        ensure_owner(Actor("s2", Role.STAFF), "s1")
