import threading
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from staffloan.core.errors import AuthorizationError, ConflictError, ValidationError
from staffloan.core.roles import Actor, Role
from staffloan.core.states import Decision
from staffloan.database import SessionLocal
from staffloan.models.monthly_closure import MonthlyClosure
from staffloan.models.weekly_report import WeeklyReport
from staffloan.services import monthly_closures, weekly_reports
from staffloan.services.context import WorkflowContext


def _ctx(db, actor_id: str, role: Role) -> WorkflowContext:
    return WorkflowContext(actor=Actor(actor_id=actor_id, role=role), db=db)


def test_get_or_create_returns_the_same_row():
    db = SessionLocal()
    try:
        first = monthly_closures.get_or_create(_ctx(db, "staff-1", Role.STAFF), "2024-03")
        db.commit()
        second = monthly_closures.get_or_create(_ctx(db, "lender-1", Role.LENDER), date(2024, 3, 15), "staff-1")
        db.commit()

        assert first.id == second.id
        assert first.status == "awaiting_staff"
        assert (first.signature_staff, first.signature_host, first.signature_lender) == (False, False, False)
        assert first.closed_at is None
        assert db.query(MonthlyClosure).count() == 1
    finally:
        db.close()


def test_get_or_create_input_rules():
    db = SessionLocal()
    try:
        with pytest.raises(AuthorizationError):
            monthly_closures.get_or_create(_ctx(db, "staff-1", Role.STAFF), "2024-03", "staff-2")
        with pytest.raises(ValidationError):
            monthly_closures.get_or_create(_ctx(db, "lender-1", Role.LENDER), "2024-03")
        with pytest.raises(ValidationError):
            monthly_closures.get_or_create(_ctx(db, "staff-1", Role.STAFF), "03/2024")
        with pytest.raises(AuthorizationError):
            monthly_closures.get_or_create(_ctx(db, "host-1", Role.HOST), "2024-03", "staff-1")
    finally:
        db.rollback()
        db.close()


def test_concurrent_get_or_create_yields_one_row():
    workers = 6
    barrier = threading.Barrier(workers)
    ids: list[str] = []
    errors: list[Exception] = []
    lock = threading.Lock()

    def open_closure():
        db = SessionLocal()
        try:
            barrier.wait()
            closure = monthly_closures.get_or_create(_ctx(db, "staff-1", Role.STAFF), "2024-03")
            db.commit()
            with lock:
                ids.append(closure.id)
        except Exception as exc:
            with lock:
                errors.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=open_closure) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(ids)) == 1

    db = SessionLocal()
    try:
        assert db.query(MonthlyClosure).filter_by(month="2024-03", staff_id="staff-1").count() == 1
    finally:
        db.close()


def test_signatures_follow_staff_host_lender_order():
    db = SessionLocal()
    try:
        staff = _ctx(db, "staff-1", Role.STAFF)
        host = _ctx(db, "host-1", Role.HOST)
        lender = _ctx(db, "lender-1", Role.LENDER)
        closure = monthly_closures.get_or_create(staff, "2024-03")

        with pytest.raises(ConflictError):
            monthly_closures.sign_host(host, closure.id)
        with pytest.raises(ConflictError):
            monthly_closures.sign_lender(lender, closure.id)

        closure = monthly_closures.sign_staff(staff, closure.id)
        assert closure.status == "awaiting_host"
        assert closure.signature_staff is True

        with pytest.raises(ConflictError):
            monthly_closures.sign_staff(staff, closure.id)
        with pytest.raises(ConflictError):
            monthly_closures.sign_lender(lender, closure.id)

        closure = monthly_closures.sign(host, closure.id)
        assert closure.status == "awaiting_lender"
        assert closure.closed_at is None

        closure = monthly_closures.sign(lender, closure.id)
        assert closure.status == "closed"
        assert (closure.signature_staff, closure.signature_host, closure.signature_lender) == (True, True, True)
        assert closure.closed_at is not None

        with pytest.raises(ConflictError):
            monthly_closures.sign_lender(lender, closure.id)
        db.commit()
    finally:
        db.close()


def test_only_matching_role_signs():
    db = SessionLocal()
    try:
        closure = monthly_closures.get_or_create(_ctx(db, "staff-1", Role.STAFF), "2024-03")

        with pytest.raises(AuthorizationError):
            monthly_closures.sign_staff(_ctx(db, "lender-1", Role.LENDER), closure.id)
        with pytest.raises(AuthorizationError):
            monthly_closures.sign_staff(_ctx(db, "staff-2", Role.STAFF), closure.id)
        with pytest.raises(AuthorizationError):
            monthly_closures.sign(_ctx(db, "compta-1", Role.ACCOUNTING), closure.id)
    finally:
        db.rollback()
        db.close()


def test_closing_locks_weekly_reports_of_that_month():
    db = SessionLocal()
    try:
        staff = _ctx(db, "staff-1", Role.STAFF)
        in_month = weekly_reports.submit(staff, week_start=date(2024, 3, 25))
        next_month = weekly_reports.submit(staff, week_start=date(2024, 4, 1))
        other_staff = weekly_reports.submit(_ctx(db, "staff-2", Role.STAFF), week_start=date(2024, 3, 25))

        closure = monthly_closures.get_or_create(staff, "2024-03")
        monthly_closures.sign_staff(staff, closure.id)
        monthly_closures.sign_host(_ctx(db, "host-1", Role.HOST), closure.id)
        monthly_closures.sign_lender(_ctx(db, "lender-1", Role.LENDER), closure.id)
        db.commit()

        locked = {r.id: r.locked for r in db.query(WeeklyReport).all()}
        assert locked == {in_month.id: True, next_month.id: False, other_staff.id: False}

        with pytest.raises(ConflictError, match="locked"):
            weekly_reports.decide_host(_ctx(db, "host-1", Role.HOST), in_month.id, Decision.APPROVE)
        with pytest.raises(ConflictError):
            weekly_reports.update_report(staff, in_month.id, {"comment": "modifié"})
    finally:
        db.rollback()
        db.close()


def test_closed_month_refuses_new_or_moved_weekly_reports():
    db = SessionLocal()
    try:
        staff = _ctx(db, "staff-1", Role.STAFF)
        closure = monthly_closures.get_or_create(staff, "2024-03")
        monthly_closures.sign_staff(staff, closure.id)
        monthly_closures.sign_host(_ctx(db, "host-1", Role.HOST), closure.id)
        monthly_closures.sign_lender(_ctx(db, "lender-1", Role.LENDER), closure.id)
        db.commit()

        with pytest.raises(ConflictError, match="2024-03 is closed"):
            weekly_reports.submit(staff, week_start=date(2024, 3, 11), host_hours=8)

        april = weekly_reports.submit(staff, week_start=date(2024, 4, 1), host_hours=8)
        with pytest.raises(ConflictError, match="2024-03 is closed"):
            weekly_reports.update_report(staff, april.id, {"week_start": date(2024, 3, 25)})
        db.commit()

        db.refresh(april)
        assert april.week_start == date(2024, 4, 1)
        assert april.locked is False
        assert db.query(WeeklyReport).count() == 1

        # The month is closed for staff-1 only.
        other = weekly_reports.submit(_ctx(db, "staff-2", Role.STAFF), week_start=date(2024, 3, 11))
        assert other.locked is False

        weekly_reports.decide_host(_ctx(db, "host-1", Role.HOST), april.id, Decision.APPROVE)
        db.commit()
    finally:
        db.rollback()
        db.close()


def test_report_can_be_attached_once_closed():
    db = SessionLocal()
    try:
        staff = _ctx(db, "staff-1", Role.STAFF)
        lender = _ctx(db, "lender-1", Role.LENDER)
        closure = monthly_closures.get_or_create(staff, "2024-03")

        with pytest.raises(ConflictError):
            monthly_closures.attach_report(lender, closure.id, "https://files.example.org/2024-03.pdf")

        monthly_closures.sign_staff(staff, closure.id)
        monthly_closures.sign_host(_ctx(db, "host-1", Role.HOST), closure.id)
        monthly_closures.sign_lender(lender, closure.id)

        with pytest.raises(AuthorizationError):
            monthly_closures.attach_report(_ctx(db, "host-1", Role.HOST), closure.id, "https://x")

        closure = monthly_closures.attach_report(lender, closure.id, "https://files.example.org/2024-03.pdf")
        assert closure.report_url == "https://files.example.org/2024-03.pdf"
        db.commit()
    finally:
        db.close()


def test_database_rejects_status_that_disagrees_with_signatures():
    db = SessionLocal()
    try:
        db.add(
            MonthlyClosure(
                month="2024-03",
                staff_id="staff-1",
                signature_staff=False,
                signature_host=False,
                signature_lender=False,
                status="awaiting_host",
            )
        )
        with pytest.raises(IntegrityError):
            db.commit()
    finally:
        db.rollback()
        db.close()


def test_database_rejects_duplicate_month_for_staff():
    db = SessionLocal()
    try:
        db.add(MonthlyClosure(month="2024-03", staff_id="staff-1"))
        db.commit()
        db.add(MonthlyClosure(month="2024-03", staff_id="staff-1"))
        with pytest.raises(IntegrityError):
            db.commit()
    finally:
        db.rollback()
        db.close()
