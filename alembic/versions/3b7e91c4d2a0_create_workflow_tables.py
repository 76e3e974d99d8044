"""create workflow tables

Revision ID: 3b7e91c4d2a0
Revises:
Create Date: 2026-09-28 09:12:41.305118
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "3b7e91c4d2a0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_APPROVAL_STATUSES = "('pending','approved','rejected')"

# Signatures are collected staff -> host -> lender; status names the first one missing.
_STATUS_MATCHES_SIGNATURES = (
    "(status = 'awaiting_staff' AND NOT signature_staff AND NOT signature_host AND NOT signature_lender)"
    " OR (status = 'awaiting_host' AND signature_staff AND NOT signature_host AND NOT signature_lender)"
    " OR (status = 'awaiting_lender' AND signature_staff AND signature_host AND NOT signature_lender)"
    " OR (status = 'closed' AND signature_staff AND signature_host AND signature_lender)"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
    ]


def _approval_side(side: str, by_suffix: str) -> list[sa.Column]:
    return [
        sa.Column(f"{side}_status", sa.String(), server_default="pending", nullable=False),
        sa.Column(f"{side}_{by_suffix}_by", sa.String(), nullable=True),
        sa.Column(f"{side}_{by_suffix}_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("site_id", sa.String(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
        sa.CheckConstraint("role in ('staff','host','lender','accounting')", name="ck_profiles_role_valid"),
    )
    op.create_index(op.f("ix_profiles_role"), "profiles", ["role"], unique=False)

    op.create_table(
        "schedule_proposals",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("staff_id", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("host_site_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="proposed", nullable=False),
        sa.Column("validation_comment", sa.Text(), nullable=True),
        sa.Column("validated_by", sa.String(), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="ck_schedule_proposals_start_before_end"),
        sa.CheckConstraint(
            "status in ('proposed','approved','rejected')",
            name="ck_schedule_proposals_status_valid",
        ),
    )
    op.create_index(op.f("ix_schedule_proposals_staff_id"), "schedule_proposals", ["staff_id"], unique=False)
    op.create_index(op.f("ix_schedule_proposals_date"), "schedule_proposals", ["date"], unique=False)
    op.create_index(op.f("ix_schedule_proposals_status"), "schedule_proposals", ["status"], unique=False)

    op.create_table(
        "schedule_proposal_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "proposal_id",
            sa.String(),
            sa.ForeignKey("schedule_proposals.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint("proposal_id", "seq", name="uq_schedule_proposal_events_seq"),
        sa.CheckConstraint(
            "kind in ('proposed','approved','rejected')",
            name="ck_schedule_proposal_events_kind_valid",
        ),
    )
    op.create_index(
        op.f("ix_schedule_proposal_events_proposal_id"),
        "schedule_proposal_events",
        ["proposal_id"],
        unique=False,
    )

    op.create_table(
        "time_entries",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("staff_id", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("site_id", sa.String(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        *_approval_side("host", "validated"),
        *_approval_side("lender", "validated"),
        sa.Column("variance_hours", sa.Numeric(6, 2), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="ck_time_entries_start_before_end"),
        sa.CheckConstraint(f"host_status in {_APPROVAL_STATUSES}", name="ck_time_entries_host_status_valid"),
        sa.CheckConstraint(f"lender_status in {_APPROVAL_STATUSES}", name="ck_time_entries_lender_status_valid"),
    )
    op.create_index(op.f("ix_time_entries_staff_id"), "time_entries", ["staff_id"], unique=False)
    op.create_index(op.f("ix_time_entries_date"), "time_entries", ["date"], unique=False)
    op.create_index(op.f("ix_time_entries_host_status"), "time_entries", ["host_status"], unique=False)
    op.create_index(op.f("ix_time_entries_lender_status"), "time_entries", ["lender_status"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("staff_id", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("attachment_url", sa.String(), nullable=True),
        sa.Column("allocation", sa.String(), server_default="mixed", nullable=False),
        sa.Column("ventilation_ratio", sa.Numeric(4, 3), server_default=sa.text("0.5"), nullable=False),
        sa.Column("lender_share_cents", sa.Integer(), nullable=False),
        sa.Column("host_share_cents", sa.Integer(), nullable=False),
        *_approval_side("host", "validated"),
        *_approval_side("lender", "validated"),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_expenses_amount_nonnegative"),
        sa.CheckConstraint("ventilation_ratio >= 0 AND ventilation_ratio <= 1", name="ck_expenses_ratio_range"),
        sa.CheckConstraint(
            "lender_share_cents + host_share_cents = amount_cents",
            name="ck_expenses_shares_sum_to_amount",
        ),
        sa.CheckConstraint("allocation in ('lender','host','mixed')", name="ck_expenses_allocation_valid"),
        sa.CheckConstraint(f"host_status in {_APPROVAL_STATUSES}", name="ck_expenses_host_status_valid"),
        sa.CheckConstraint(f"lender_status in {_APPROVAL_STATUSES}", name="ck_expenses_lender_status_valid"),
    )
    op.create_index(op.f("ix_expenses_staff_id"), "expenses", ["staff_id"], unique=False)
    op.create_index(op.f("ix_expenses_date"), "expenses", ["date"], unique=False)
    op.create_index(op.f("ix_expenses_host_status"), "expenses", ["host_status"], unique=False)
    op.create_index(op.f("ix_expenses_lender_status"), "expenses", ["lender_status"], unique=False)

    op.create_table(
        "weekly_reports",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("staff_id", sa.String(), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("week_end", sa.Date(), nullable=False),
        sa.Column("host_activity", sa.Text(), server_default="", nullable=False),
        sa.Column("host_hours", sa.Numeric(6, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("lender_activity", sa.Text(), server_default="", nullable=False),
        sa.Column("lender_hours", sa.Numeric(6, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("host_status", sa.String(), server_default="pending", nullable=False),
        sa.Column("host_comment", sa.Text(), nullable=True),
        sa.Column("host_decided_by", sa.String(), nullable=True),
        sa.Column("host_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lender_status", sa.String(), server_default="pending", nullable=False),
        sa.Column("lender_comment", sa.Text(), nullable=True),
        sa.Column("lender_decided_by", sa.String(), nullable=True),
        sa.Column("lender_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("declared_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("host_hours >= 0 AND lender_hours >= 0", name="ck_weekly_reports_hours_nonnegative"),
        sa.CheckConstraint(f"host_status in {_APPROVAL_STATUSES}", name="ck_weekly_reports_host_status_valid"),
        sa.CheckConstraint(f"lender_status in {_APPROVAL_STATUSES}", name="ck_weekly_reports_lender_status_valid"),
    )
    op.create_index(op.f("ix_weekly_reports_staff_id"), "weekly_reports", ["staff_id"], unique=False)
    op.create_index(op.f("ix_weekly_reports_week_start"), "weekly_reports", ["week_start"], unique=False)
    op.create_index(op.f("ix_weekly_reports_host_status"), "weekly_reports", ["host_status"], unique=False)
    op.create_index(op.f("ix_weekly_reports_lender_status"), "weekly_reports", ["lender_status"], unique=False)

    op.create_table(
        "consistency_alerts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "weekly_report_id",
            sa.String(),
            sa.ForeignKey("weekly_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("resolved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
    )
    op.create_index(
        op.f("ix_consistency_alerts_weekly_report_id"),
        "consistency_alerts",
        ["weekly_report_id"],
        unique=False,
    )

    op.create_table(
        "monthly_closures",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("staff_id", sa.String(), nullable=False),
        sa.Column("signature_staff", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("signature_host", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("signature_lender", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("status", sa.String(), server_default="awaiting_staff", nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("report_url", sa.String(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("month", "staff_id", name="uq_monthly_closures_month_staff"),
        sa.CheckConstraint(
            "(status = 'closed' AND closed_at IS NOT NULL) OR (status <> 'closed' AND closed_at IS NULL)",
            name="ck_monthly_closures_closed_at_consistent",
        ),
        sa.CheckConstraint(_STATUS_MATCHES_SIGNATURES, name="ck_monthly_closures_status_matches_signatures"),
    )
    op.create_index(op.f("ix_monthly_closures_month"), "monthly_closures", ["month"], unique=False)
    op.create_index(op.f("ix_monthly_closures_staff_id"), "monthly_closures", ["staff_id"], unique=False)
    op.create_index(op.f("ix_monthly_closures_status"), "monthly_closures", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("table_name", sa.String(), nullable=False),
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
    )
    for column in ("actor_id", "table_name", "record_id", "action", "created_at"):
        op.create_index(op.f(f"ix_audit_logs_{column}"), "audit_logs", [column], unique=False)

    op.create_table(
        "event_outbox",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("idempotency_key", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("processed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint("event_type", "idempotency_key", name="uq_event_outbox_idempotency"),
    )
    op.create_index("ix_event_outbox_processed", "event_outbox", ["processed", "created_at"], unique=False)
    op.create_index(op.f("ix_event_outbox_event_type"), "event_outbox", ["event_type"], unique=False)


def downgrade() -> None:
    op.drop_table("event_outbox")
    op.drop_table("audit_logs")
    op.drop_table("monthly_closures")
    op.drop_table("consistency_alerts")
    op.drop_table("weekly_reports")
    op.drop_table("expenses")
    op.drop_table("time_entries")
    op.drop_table("schedule_proposal_events")
    op.drop_table("schedule_proposals")
    op.drop_table("profiles")
