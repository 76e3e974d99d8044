from datetime import date, time

import pytest

from staffloan.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from staffloan.core.roles import Actor, Role
from staffloan.database import SessionLocal
from staffloan.models.time_entry import TimeEntry
from staffloan.services import schedule_proposals, time_entries
from staffloan.services.context import WorkflowContext


def _ctx(db, actor_id: str, role: Role) -> WorkflowContext:
    return WorkflowContext(actor=Actor(actor_id=actor_id, role=role), db=db)


def _declare(db, staff_id="staff-1", day=date(2024, 3, 4), start="09:00", end="17:00"):
    return time_entries.declare(
        _ctx(db, staff_id, Role.STAFF),
        day=day,
        start_time=start,
        end_time=end,
        site_id="site-host",
    )


def test_declared_entry_starts_pending_on_both_sides():
    db = SessionLocal()
    try:
        entry = _declare(db)
        db.commit()

        assert entry.staff_id == "staff-1"
        assert entry.host_status == "pending"
        assert entry.lender_status == "pending"
        assert entry.start_time == time(9, 0)
        assert entry.variance_hours == 0
    finally:
        db.close()


def test_variance_is_computed_against_the_approved_plan():
    db = SessionLocal()
    try:
        proposal = schedule_proposals.propose(
            _ctx(db, "host-1", Role.HOST),
            staff_id="staff-1",
            day=date(2024, 3, 4),
            start_time="09:00",
            end_time="17:00",
            host_site_id="site-host",
        )
        schedule_proposals.approve(_ctx(db, "lender-1", Role.LENDER), proposal.id)

        entry = _declare(db, start="09:00", end="18:30")
        other_day = _declare(db, day=date(2024, 3, 5), start="09:00", end="18:30")
        db.commit()

        assert entry.variance_hours == 1.5
        assert other_day.variance_hours == 0
    finally:
        db.close()


def test_rejected_plan_is_not_used_for_variance():
    db = SessionLocal()
    try:
        proposal = schedule_proposals.propose(
            _ctx(db, "lender-1", Role.LENDER),
            staff_id="staff-1",
            day=date(2024, 3, 4),
            start_time="09:00",
            end_time="12:00",
            host_site_id="site-host",
        )
        schedule_proposals.reject(_ctx(db, "lender-1", Role.LENDER), proposal.id, "wrong slot")

        entry = _declare(db, start="09:00", end="18:30")
        assert entry.variance_hours == 0
    finally:
        db.rollback()
        db.close()


def test_inverted_time_range_is_rejected():
    db = SessionLocal()
    try:
        with pytest.raises(ValidationError):
            _declare(db, start="18:00", end="09:00")
    finally:
        db.rollback()
        db.close()


def test_each_side_decides_once_and_records_validator():
    db = SessionLocal()
    try:
        entry = _declare(db)
        host = _ctx(db, "host-1", Role.HOST)
        lender = _ctx(db, "lender-1", Role.LENDER)

        entry = time_entries.approve_host(host, entry.id)
        assert entry.host_status == "approved"
        assert entry.host_validated_by == "host-1"
        assert entry.host_validated_at is not None
        assert entry.lender_status == "pending"
        db.refresh(entry)
        first_decision = (entry.host_status, entry.host_validated_by, entry.host_validated_at)

        with pytest.raises(ConflictError):
            time_entries.approve_host(host, entry.id)
        with pytest.raises(ConflictError):
            time_entries.reject_host(host, entry.id)
        with pytest.raises(ConflictError):
            time_entries.reject_host(_ctx(db, "host-2", Role.HOST), entry.id)

        db.refresh(entry)
        assert (entry.host_status, entry.host_validated_by, entry.host_validated_at) == first_decision

        entry = time_entries.reject_lender(lender, entry.id)
        assert entry.lender_status == "rejected"
        assert entry.lender_validated_by == "lender-1"

        with pytest.raises(ConflictError):
            time_entries.approve_lender(lender, entry.id)
        db.commit()
    finally:
        db.close()


def test_lender_may_decide_before_host_and_stays_authoritative():
    db = SessionLocal()
    try:
        entry = _declare(db)

        entry = time_entries.approve_lender(_ctx(db, "lender-1", Role.LENDER), entry.id)
        assert entry.host_status == "pending"
        assert entry.lender_status == "approved"

        entry = time_entries.reject_host(_ctx(db, "host-1", Role.HOST), entry.id)
        assert entry.host_status == "rejected"
        assert entry.lender_status == "approved"
        approved = time_entries.list_entries(_ctx(db, "compta-1", Role.ACCOUNTING))
        assert [e.id for e in approved] == [entry.id]
        db.commit()
    finally:
        db.close()


def test_roles_only_touch_their_own_side():
    db = SessionLocal()
    try:
        entry = _declare(db)

        with pytest.raises(AuthorizationError):
            time_entries.approve_lender(_ctx(db, "host-1", Role.HOST), entry.id)
        with pytest.raises(AuthorizationError):
            time_entries.approve_host(_ctx(db, "lender-1", Role.LENDER), entry.id)
        with pytest.raises(AuthorizationError):
            time_entries.approve_host(_ctx(db, "staff-1", Role.STAFF), entry.id)
        with pytest.raises(AuthorizationError):
            time_entries.approve_lender(_ctx(db, "compta-1", Role.ACCOUNTING), entry.id)

        db.refresh(entry)
        assert entry.host_status == "pending"
        assert entry.lender_status == "pending"
    finally:
        db.rollback()
        db.close()


def test_deciding_a_missing_entry_is_not_found():
    db = SessionLocal()
    try:
        with pytest.raises(NotFoundError):
            time_entries.approve_host(_ctx(db, "host-1", Role.HOST), "does-not-exist")
    finally:
        db.close()


def test_staff_cannot_declare_for_someone_else():
    db = SessionLocal()
    try:
        with pytest.raises(AuthorizationError):
            time_entries.declare(
                _ctx(db, "staff-1", Role.STAFF),
                day=date(2024, 3, 4),
                start_time="09:00",
                end_time="17:00",
                site_id="site-host",
                staff_id="staff-2",
            )
    finally:
        db.rollback()
        db.close()


def test_lender_declaring_on_behalf_is_approved_on_both_sides():
    db = SessionLocal()
    try:
        entry = time_entries.declare(
            _ctx(db, "lender-1", Role.LENDER),
            day=date(2024, 3, 4),
            start_time="09:00",
            end_time="17:00",
            site_id="site-host",
            staff_id="staff-1",
        )
        db.commit()

        assert entry.staff_id == "staff-1"
        assert entry.host_status == "approved"
        assert entry.lender_status == "approved"
        assert entry.host_validated_by == "lender-1"
        assert entry.lender_validated_by == "lender-1"
    finally:
        db.close()


def test_lender_must_name_the_staff_member():
    db = SessionLocal()
    try:
        with pytest.raises(ValidationError):
            time_entries.declare(
                _ctx(db, "lender-1", Role.LENDER),
                day=date(2024, 3, 4),
                start_time="09:00",
                end_time="17:00",
                site_id="site-host",
            )
    finally:
        db.rollback()
        db.close()


def test_delete_only_while_fully_pending_and_only_by_owner():
    db = SessionLocal()
    try:
        pending = _declare(db)
        decided = _declare(db, day=date(2024, 3, 5))
        time_entries.approve_host(_ctx(db, "host-1", Role.HOST), decided.id)
        db.commit()

        with pytest.raises(AuthorizationError):
            time_entries.delete(_ctx(db, "staff-2", Role.STAFF), pending.id)
        with pytest.raises(ConflictError):
            time_entries.delete(_ctx(db, "staff-1", Role.STAFF), decided.id)

        time_entries.delete(_ctx(db, "staff-1", Role.STAFF), pending.id)
        db.commit()

        assert db.get(TimeEntry, pending.id) is None
        assert db.get(TimeEntry, decided.id) is not None
    finally:
        db.close()


def test_listing_scopes_by_role():
    db = SessionLocal()
    try:
        mine = _declare(db, staff_id="staff-1")
        _declare(db, staff_id="staff-2")
        approved = _declare(db, staff_id="staff-2", day=date(2024, 3, 6))
        time_entries.approve_lender(_ctx(db, "lender-1", Role.LENDER), approved.id)
        db.commit()

        staff_rows = time_entries.list_entries(_ctx(db, "staff-1", Role.STAFF), staff_id="staff-2")
        assert [r.id for r in staff_rows] == [mine.id]

        lender_rows = time_entries.list_entries(_ctx(db, "lender-1", Role.LENDER))
        assert len(lender_rows) == 3

        accounting_rows = time_entries.list_entries(_ctx(db, "compta-1", Role.ACCOUNTING))
        assert [r.id for r in accounting_rows] == [approved.id]
    finally:
        db.close()
