from staffloan.models.audit_log import AuditLog
from staffloan.models.consistency_alert import ConsistencyAlert
from staffloan.models.event_outbox import EventOutbox
from staffloan.models.expense import Expense
from staffloan.models.monthly_closure import MonthlyClosure
from staffloan.models.profile import Profile
from staffloan.models.schedule_proposal import ScheduleProposal, ScheduleProposalEvent
from staffloan.models.time_entry import TimeEntry
from staffloan.models.weekly_report import WeeklyReport

__all__ = [
    "AuditLog",
    "ConsistencyAlert",
    "EventOutbox",
    "Expense",
    "MonthlyClosure",
    "Profile",
    "ScheduleProposal",
    "ScheduleProposalEvent",
    "TimeEntry",
    "WeeklyReport",
]
