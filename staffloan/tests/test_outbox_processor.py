from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from staffloan.core.roles import Actor, Role
from staffloan.core.states import Decision
from staffloan.database import SessionLocal
from staffloan.models.event_outbox import EventOutbox
from staffloan.models.profile import Profile
from staffloan.services import outbox_handlers, weekly_reports
from staffloan.services.context import WorkflowContext
from staffloan.services.notifications import NOTIFICATION_EVENT, enqueue_notification
from staffloan.services.outbox_processor import _retry_wait, process_outbox_batch


def _insert_event(db, *, event_type: str, key: str, payload: dict) -> EventOutbox:
    row = EventOutbox(event_type=event_type, idempotency_key=key, payload=payload)
    db.add(row)
    db.flush()
    db.refresh(row)
    return row


@pytest.fixture
def sent(monkeypatch):
    messages = []
    monkeypatch.setattr(outbox_handlers, "deliver_email", messages.append)
    return messages


def test_retry_wait_is_exponential_and_capped():
    assert _retry_wait(0) == timedelta(0)
    assert _retry_wait(1) == timedelta(seconds=2)
    assert _retry_wait(3) == timedelta(seconds=8)
    assert _retry_wait(9) == timedelta(seconds=60)


def test_weekly_report_decision_is_rendered_and_delivered(sent):
    db = SessionLocal()
    try:
        db.add(Profile(id="staff-1", email="marie@example.org", first_name="Marie", last_name="Curie", role="staff"))
        db.add(Profile(id="host-1", email="host@example.org", first_name="Paul", last_name="Host", role="host"))
        db.flush()

        staff = WorkflowContext(actor=Actor(actor_id="staff-1", role=Role.STAFF), db=db)
        host = WorkflowContext(actor=Actor(actor_id="host-1", role=Role.HOST), db=db)
        report = weekly_reports.submit(staff, week_start=date(2024, 3, 4), host_hours=20)
        weekly_reports.decide_host(host, report.id, Decision.REJECT, "Heures du mardi manquantes")
        db.commit()

        row = db.query(EventOutbox).one()
        result = process_outbox_batch(db=db, now=row.created_at + timedelta(seconds=1))
        db.commit()
        db.refresh(row)

        assert result.processed == 1
        assert result.failed == 0
        assert row.processed is True
        assert row.last_error is None

        assert len(sent) == 1
        message = sent[0]
        assert message.recipient == "marie@example.org"
        assert message.subject == "Votre bilan hebdomadaire nécessite des corrections"
        assert "Marie Curie" in message.html
        assert "04/03/2024" in message.html
        assert "10/03/2024" in message.html
        assert "Heures du mardi manquantes" in message.html
    finally:
        db.close()


def test_unknown_event_backs_off_and_records_the_error(sent):
    db = SessionLocal()
    try:
        row = _insert_event(db, event_type="SOMETHING_ELSE", key="k-unknown", payload={"x": 1})
        db.commit()
        now0 = row.created_at + timedelta(seconds=1)

        r1 = process_outbox_batch(db=db, now=now0, batch_size=10, max_retries=3)
        db.commit()
        db.refresh(row)
        assert (r1.processed, r1.failed) == (0, 1)
        assert row.retry_count == 1
        assert row.processed is False
        assert "Unknown event_type" in row.last_error

        # Not due again until two seconds after creation.
        r2 = process_outbox_batch(db=db, now=now0, batch_size=10, max_retries=3)
        assert (r2.processed, r2.failed) == (0, 0)

        process_outbox_batch(db=db, now=row.created_at + timedelta(seconds=3), batch_size=10, max_retries=3)
        process_outbox_batch(db=db, now=row.created_at + timedelta(seconds=10), batch_size=10, max_retries=3)
        db.commit()
        db.refresh(row)

        # Gives up after max_retries and leaves the error for inspection.
        assert row.retry_count == 3
        assert row.processed is True
        assert row.last_error
        assert sent == []
    finally:
        db.close()


def test_unknown_template_fails_the_row_without_sending(sent):
    db = SessionLocal()
    try:
        row = enqueue_notification(
            db,
            recipient="someone@example.org",
            template_name="payslip_ready",
            params={},
            idempotency_key="k-template",
        )
        db.commit()

        result = process_outbox_batch(db=db, now=row.created_at + timedelta(seconds=1))
        db.commit()
        db.refresh(row)

        assert result.failed == 1
        assert "Unknown notification template" in row.last_error
        assert sent == []
    finally:
        db.close()


def test_row_without_recipient_is_skipped_and_marked_processed(sent):
    db = SessionLocal()
    try:
        row = _insert_event(db, event_type=NOTIFICATION_EVENT, key="k-empty", payload={"template": "weekly_report_approved"})
        db.commit()

        result = process_outbox_batch(db=db, now=row.created_at + timedelta(seconds=1))
        db.commit()
        db.refresh(row)

        assert result.processed == 1
        assert row.processed is True
        assert sent == []
    finally:
        db.close()


def test_idempotency_key_is_unique_per_event_type():
    db = SessionLocal()
    try:
        _insert_event(db, event_type=NOTIFICATION_EVENT, key="weekly_report:r1:host", payload={})
        db.commit()

        with pytest.raises(IntegrityError):
            _insert_event(db, event_type=NOTIFICATION_EVENT, key="weekly_report:r1:host", payload={})
        db.rollback()

        _insert_event(db, event_type="OTHER_EVENT", key="weekly_report:r1:host", payload={})
        db.commit()
        assert db.query(EventOutbox).count() == 2
    finally:
        db.close()


def test_custom_handlers_receive_the_row():
    db = SessionLocal()
    try:
        _insert_event(db, event_type="PING", key="k-ping", payload={"hello": "world"})
        db.commit()
        seen = []

        def handler(row: EventOutbox, _db):
            seen.append(row.payload["hello"])

        result = process_outbox_batch(db=db, batch_size=10, handlers={"PING": handler})
        db.commit()

        assert result.processed == 1
        assert seen == ["world"]
    finally:
        db.close()


def test_worker_settings_read_the_environment(monkeypatch):
    from staffloan.services.outbox_worker import WorkerSettings

    monkeypatch.setenv("OUTBOX_POLL_SECONDS", "0.25")
    monkeypatch.setenv("OUTBOX_BATCH_SIZE", "not-a-number")
    settings = WorkerSettings.from_env()

    assert settings.poll_seconds == 0.25
    assert settings.batch_size == 50
    # Never runs alongside the test-suite.
    assert settings.enabled is False
