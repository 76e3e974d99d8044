import logging
from typing import Any

from sqlalchemy.orm import Session

from staffloan.models.event_outbox import EventOutbox
from staffloan.services.notifications import deliver_email, render_notification

logger = logging.getLogger(__name__)


def handle_notification_requested(row: EventOutbox, db: Session) -> None:
    _ = db
    payload: Any = row.payload or {}

    recipient = payload.get("recipient") if isinstance(payload, dict) else None
    template_name = payload.get("template") if isinstance(payload, dict) else None
    if not recipient or not template_name:
        logger.info(
            "NOTIFICATION_REQUESTED missing recipient/template; skipping",
            extra={"event_outbox_id": row.id},
        )
        return

    message = render_notification(
        str(recipient),
        str(template_name),
        dict(payload.get("params") or {}),
    )
    deliver_email(message)
