from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from sqlalchemy.orm import Session

from staffloan.core.states import Decision, Side
from staffloan.models.event_outbox import EventOutbox
from staffloan.models.profile import Profile
from staffloan.models.weekly_report import WeeklyReport

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "NOTIFICATION_REQUESTED"

SUBJECTS = {
    "weekly_report_approved": "Votre bilan hebdomadaire a été validé",
    "weekly_report_rejected": "Votre bilan hebdomadaire nécessite des corrections",
}

_templates = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent.parent / "templates")),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
)


@dataclass(frozen=True)
class EmailMessage:
    sender: str
    recipient: str
    subject: str
    html: str


def _mail_from() -> str:
    return os.getenv("MAIL_FROM", "no-reply@staffloan.local")


def render_notification(recipient: str, template_name: str, params: dict[str, Any]) -> EmailMessage:
    if template_name not in SUBJECTS:
        raise ValueError(f"Unknown notification template: {template_name}")
    html = _templates.get_template(f"{template_name}.html").render(**params)
    return EmailMessage(
        sender=_mail_from(),
        recipient=recipient,
        subject=SUBJECTS[template_name],
        html=html,
    )


def deliver_email(message: EmailMessage) -> None:
    # Transport is an external collaborator; this is the hand-off point.
    logger.info(
        "Email handed to transport",
        extra={"recipient": message.recipient, "subject": message.subject},
    )


def enqueue_notification(
    db: Session,
    *,
    recipient: str,
    template_name: str,
    params: dict[str, Any],
    idempotency_key: str,
) -> EventOutbox:
    row = EventOutbox(
        event_type=NOTIFICATION_EVENT,
        idempotency_key=idempotency_key,
        payload={
            "recipient": recipient,
            "template": template_name,
            "params": params,
        },
    )
    db.add(row)
    db.flush()
    return row


def _format_day(value) -> str:
    return value.strftime("%d/%m/%Y")


def notify_weekly_report_decision(
    db: Session,
    report: WeeklyReport,
    *,
    side: Side,
    decision: Decision,
    decided_by: str,
    comment: Optional[str] = None,
) -> Optional[EventOutbox]:
    """Queue the e-mail telling a staff member how their weekly report was decided.

    Rejections without a comment give the staff member nothing to act on and
    are not sent.
    """
    if decision is Decision.REJECT and not comment:
        return None

    staff = db.get(Profile, report.staff_id)
    if staff is None or not staff.email:
        logger.info(
            "No e-mail on file; skipping weekly report notification",
            extra={"weekly_report_id": report.id, "staff_id": report.staff_id},
        )
        return None

    decider = db.get(Profile, str(decided_by))
    params = {
        "staff_name": staff.display_name,
        "week_start": _format_day(report.week_start),
        "week_end": _format_day(report.week_end),
        "decided_by": decider.display_name if decider is not None else str(decided_by),
    }
    if decision is Decision.APPROVE:
        template_name = "weekly_report_approved"
    else:
        template_name = "weekly_report_rejected"
        params["reason"] = comment

    return enqueue_notification(
        db,
        recipient=staff.email,
        template_name=template_name,
        params=params,
        idempotency_key=f"weekly_report:{report.id}:{Side(side).value}",
    )
