"""Pure computations behind the approval workflow.

Nothing here touches the database: callers fetch the records, these
functions turn them into hours, shares and totals.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from staffloan.core.errors import ValidationError
from staffloan.core.states import Allocation, ApprovalStatus

# Times of day are anchored on an arbitrary common date before subtracting.
_REFERENCE_DATE = date(2000, 1, 1)

TimeLike = Union[time, str]


def parse_time(value: TimeLike) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid time of day: {value!r}") from exc
    raise ValidationError(f"Invalid time of day: {value!r}")


def duration_hours(start: TimeLike, end: TimeLike) -> float:
    """Hours between two times of day; ``end`` must be strictly after ``start``."""
    start_dt = datetime.combine(_REFERENCE_DATE, parse_time(start))
    end_dt = datetime.combine(_REFERENCE_DATE, parse_time(end))
    if end_dt <= start_dt:
        raise ValidationError("End time must be after start time")
    return (end_dt - start_dt).total_seconds() / 3600.0


def variance_vs_plan(
    actual_start: TimeLike,
    actual_end: TimeLike,
    planned_start: Optional[TimeLike] = None,
    planned_end: Optional[TimeLike] = None,
) -> float:
    """Actual minus planned duration, in signed hours. No plan means no variance."""
    actual = duration_hours(actual_start, actual_end)
    if planned_start is None or planned_end is None:
        return 0.0
    return actual - duration_hours(planned_start, planned_end)


def ventilate(amount_cents: int, allocation: Union[Allocation, str], ratio: float = 0.5) -> tuple[int, int]:
    """Split an expense into ``(lender_share_cents, host_share_cents)``.

    ``ratio`` is the lender's part and only matters for mixed allocations.
    The host share is computed as the remainder so the two always add up to
    the gross amount.
    """
    try:
        allocation = Allocation(allocation)
    except ValueError as exc:
        raise ValidationError(f"Unknown allocation: {allocation!r}") from exc

    amount_cents = int(amount_cents)
    if amount_cents < 0:
        raise ValidationError("Amount must not be negative")

    if allocation is Allocation.LENDER:
        return amount_cents, 0
    if allocation is Allocation.HOST:
        return 0, amount_cents

    ratio_dec = Decimal(str(ratio))
    if ratio_dec < 0 or ratio_dec > 1:
        raise ValidationError("Ventilation ratio must be between 0 and 1")

    lender = int((Decimal(amount_cents) * ratio_dec).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return lender, amount_cents - lender


def effective_ratio(allocation: Union[Allocation, str], ratio: float) -> float:
    allocation = Allocation(allocation)
    if allocation is Allocation.LENDER:
        return 1.0
    if allocation is Allocation.HOST:
        return 0.0
    return float(ratio)


def month_bounds(month: Union[str, date]) -> tuple[date, date]:
    """``[first day, first day of next month)`` for a ``YYYY-MM`` string or a date."""
    if isinstance(month, date):
        start = month.replace(day=1)
    else:
        try:
            start = datetime.strptime(str(month).strip(), "%Y-%m").date()
        except ValueError as exc:
            raise ValidationError(f"Invalid month, expected YYYY-MM: {month!r}") from exc

    if start.month == 12:
        end = date(start.year + 1, 1, 1)
    else:
        end = date(start.year, start.month + 1, 1)
    return start, end


def month_key(month: Union[str, date]) -> str:
    start, _ = month_bounds(month)
    return start.strftime("%Y-%m")


@dataclass(frozen=True)
class MonthlyTotals:
    total_hours: float
    total_amount_cents: int
    lender_share_cents: int
    host_share_cents: int
    time_entry_count: int
    expense_count: int


def _is_authoritatively_approved(record) -> bool:
    # The lender signs last, so its status is the one that counts.
    return record.lender_status == ApprovalStatus.APPROVED.value


def monthly_totals(time_entries: Iterable, expenses: Iterable, month: Union[str, date]) -> MonthlyTotals:
    start, end = month_bounds(month)

    total_hours = 0.0
    entry_count = 0
    for entry in time_entries:
        if not (start <= entry.date < end) or not _is_authoritatively_approved(entry):
            continue
        total_hours += duration_hours(entry.start_time, entry.end_time)
        entry_count += 1

    amount = lender = host = 0
    expense_count = 0
    for expense in expenses:
        if not (start <= expense.date < end) or not _is_authoritatively_approved(expense):
            continue
        amount += int(expense.amount_cents)
        lender += int(expense.lender_share_cents)
        host += int(expense.host_share_cents)
        expense_count += 1

    return MonthlyTotals(
        total_hours=round(total_hours, 2),
        total_amount_cents=amount,
        lender_share_cents=lender,
        host_share_cents=host,
        time_entry_count=entry_count,
        expense_count=expense_count,
    )
