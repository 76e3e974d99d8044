"""Delivery side of the event outbox.

Workflow transitions only insert ``event_outbox`` rows inside their own
transaction; this module hands committed rows to their handler. A failing row
is retried with exponential backoff and given up on after ``max_retries``,
keeping its last error for inspection.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from staffloan.database import SessionLocal
from staffloan.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)

OutboxHandler = Callable[[EventOutbox, Session], None]

MAX_BACKOFF_SECONDS = 60
# Rows waiting on backoff are skipped in Python, so read further than the batch.
SCAN_FACTOR = 4
_ADVISORY_LOCK = {"k1": 5151, "k2": 5152}


@dataclass(frozen=True)
class OutboxProcessResult:
    processed: int
    failed: int


def _retry_wait(retry_count: int) -> timedelta:
    """0s before the first attempt, then 2s, 4s, 8s ... capped at MAX_BACKOFF_SECONDS."""
    attempts = int(retry_count or 0)
    if attempts <= 0:
        return timedelta(0)
    return timedelta(seconds=min(2**attempts, MAX_BACKOFF_SECONDS))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _due(created_at: datetime, retry_count: int, now: datetime) -> bool:
    return _as_utc(now) >= _as_utc(created_at) + _retry_wait(retry_count)


def default_handlers() -> Dict[str, OutboxHandler]:
    from staffloan.services.notifications import NOTIFICATION_EVENT
    from staffloan.services.outbox_handlers import handle_notification_requested

    return {NOTIFICATION_EVENT: handle_notification_requested}


def _claim_candidates(db: Session, batch_size: int) -> list[EventOutbox]:
    return (
        db.query(EventOutbox)
        .filter(EventOutbox.processed.is_(False))
        .order_by(EventOutbox.id.asc())
        .with_for_update(skip_locked=True)
        .limit(batch_size * SCAN_FACTOR)
        .all()
    )


def _deliver(
    db: Session,
    row: EventOutbox,
    handlers: Dict[str, OutboxHandler],
    now: datetime,
    max_retries: int,
) -> bool:
    """Run the row's handler and record the outcome on the row; True on success."""
    try:
        handler = handlers.get(row.event_type)
        if handler is None:
            raise LookupError(f"Unknown event_type: {row.event_type}")
        handler(row, db)
    except Exception as exc:
        row.retry_count = int(row.retry_count or 0) + 1
        row.last_error = f"{type(exc).__name__}: {exc}"[:2000]
        exhausted = row.retry_count >= max_retries
        if exhausted:
            row.processed = True
            row.processed_at = now
        db.flush()
        logger.exception(
            "Outbox delivery failed",
            extra={
                "event_outbox_id": row.id,
                "event_type": row.event_type,
                "retry_count": row.retry_count,
                "gave_up": exhausted,
            },
        )
        return False

    row.processed = True
    row.processed_at = now
    row.last_error = None
    db.flush()
    return True


def process_outbox_batch(
    *,
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
    batch_size: int = 50,
    max_retries: int = 10,
    handlers: Optional[Dict[str, OutboxHandler]] = None,
) -> OutboxProcessResult:
    """Deliver up to ``batch_size`` due rows.

    With an explicit ``db`` the caller owns the transaction; otherwise a
    session is opened and committed here.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()
    now = now or datetime.now(timezone.utc)
    handlers = default_handlers() if handlers is None else handlers
    batch_size = int(batch_size)

    processed = failed = 0
    try:
        for row in _claim_candidates(db, batch_size):
            if processed + failed >= batch_size:
                break
            if not _due(row.created_at, row.retry_count, now):
                continue
            if _deliver(db, row, handlers, now, int(max_retries)):
                processed += 1
            else:
                failed += 1

        if owns_db:
            db.commit()
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()

    return OutboxProcessResult(processed=processed, failed=failed)


def try_acquire_outbox_lock(db: Session) -> bool:
    """Session-level advisory lock on PostgreSQL; other backends run a single worker."""
    if db.get_bind().dialect.name != "postgresql":
        return True
    return bool(db.execute(text("select pg_try_advisory_lock(:k1, :k2)"), _ADVISORY_LOCK).scalar())


def release_outbox_lock(db: Session) -> None:
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text("select pg_advisory_unlock(:k1, :k2)"), _ADVISORY_LOCK)
