from datetime import date, time
from types import SimpleNamespace

import pytest

from staffloan.core.errors import ValidationError
from staffloan.core.states import Allocation, ClosureStatus, closure_status
from staffloan.services.derivations import (
    duration_hours,
    month_bounds,
    month_key,
    monthly_totals,
    variance_vs_plan,
    ventilate,
)


def test_duration_hours_accepts_strings_and_times():
    assert duration_hours("09:00", "18:30") == 9.5
    assert duration_hours(time(8, 15), time(12, 0)) == 3.75


@pytest.mark.parametrize("start,end", [("18:00", "09:00"), ("09:00", "09:00")])
def test_duration_hours_rejects_non_positive_range(start, end):
    with pytest.raises(ValidationError):
        duration_hours(start, end)


def test_duration_hours_rejects_garbage():
    with pytest.raises(ValidationError):
        duration_hours("nine", "18:00")


def test_variance_against_approved_plan():
    # 09:00-18:30 worked against an 8h plan
    assert variance_vs_plan("09:00", "18:30", "09:00", "17:00") == 1.5
    assert variance_vs_plan("10:00", "12:00", "09:00", "17:00") == -6.0


def test_variance_without_plan_is_zero():
    assert variance_vs_plan("09:00", "18:30") == 0.0
    assert variance_vs_plan("09:00", "18:30", None, None) == 0.0


def test_ventilate_mixed_split():
    assert ventilate(10000, Allocation.MIXED, 0.3) == (3000, 7000)
    assert ventilate(10000, "mixed") == (5000, 5000)


def test_ventilate_rounds_half_up_and_conserves_amount():
    lender, host = ventilate(1001, Allocation.MIXED, 0.5)
    assert (lender, host) == (501, 500)
    assert lender + host == 1001


def test_ventilate_ignores_ratio_for_single_party_allocations():
    assert ventilate(10000, Allocation.LENDER, 0.3) == (10000, 0)
    assert ventilate(10000, Allocation.HOST, 0.3) == (0, 10000)


@pytest.mark.parametrize(
    "amount,allocation,ratio",
    [(-1, "mixed", 0.5), (100, "mixed", 1.5), (100, "mixed", -0.1), (100, "split", 0.5)],
)
def test_ventilate_rejects_invalid_input(amount, allocation, ratio):
    with pytest.raises(ValidationError):
        ventilate(amount, allocation, ratio)


def test_month_bounds_and_key():
    assert month_bounds("2024-03") == (date(2024, 3, 1), date(2024, 4, 1))
    assert month_bounds("2024-12") == (date(2024, 12, 1), date(2025, 1, 1))
    assert month_bounds(date(2024, 2, 17)) == (date(2024, 2, 1), date(2024, 3, 1))
    assert month_key(date(2024, 2, 17)) == "2024-02"

    with pytest.raises(ValidationError):
        month_bounds("March 2024")


def _entry(day, start, end, lender_status):
    return SimpleNamespace(date=day, start_time=start, end_time=end, lender_status=lender_status)


def _expense(day, amount, lender, host, lender_status):
    return SimpleNamespace(
        date=day,
        amount_cents=amount,
        lender_share_cents=lender,
        host_share_cents=host,
        lender_status=lender_status,
    )


def test_monthly_totals_counts_only_lender_approved_rows_inside_the_month():
    entries = [
        _entry(date(2024, 3, 4), time(9, 0), time(18, 30), "approved"),
        _entry(date(2024, 3, 5), time(9, 0), time(17, 0), "pending"),
        _entry(date(2024, 3, 6), time(9, 0), time(17, 0), "rejected"),
        _entry(date(2024, 4, 1), time(9, 0), time(17, 0), "approved"),
        _entry(date(2024, 2, 29), time(9, 0), time(17, 0), "approved"),
    ]
    expenses = [
        _expense(date(2024, 3, 10), 10000, 3000, 7000, "approved"),
        _expense(date(2024, 3, 11), 5000, 5000, 0, "pending"),
        _expense(date(2024, 3, 31), 200, 0, 200, "approved"),
    ]

    totals = monthly_totals(entries, expenses, "2024-03")

    assert totals.total_hours == 9.5
    assert totals.time_entry_count == 1
    assert totals.total_amount_cents == 10200
    assert totals.lender_share_cents == 3000
    assert totals.host_share_cents == 7200
    assert totals.expense_count == 2


def test_monthly_totals_host_approval_alone_does_not_count():
    entries = [_entry(date(2024, 3, 4), time(9, 0), time(17, 0), "pending")]
    entries[0].host_status = "approved"

    totals = monthly_totals(entries, [], "2024-03")

    assert totals.total_hours == 0
    assert totals.time_entry_count == 0


@pytest.mark.parametrize(
    "flags,expected",
    [
        ((False, False, False), ClosureStatus.AWAITING_STAFF),
        ((True, False, False), ClosureStatus.AWAITING_HOST),
        ((True, True, False), ClosureStatus.AWAITING_LENDER),
        ((True, True, True), ClosureStatus.CLOSED),
    ],
)
def test_closure_status_follows_first_missing_signature(flags, expected):
    assert closure_status(*flags) is expected
