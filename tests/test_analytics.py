from datetime import date, datetime
from decimal import Decimal

import pytest

from expense_dashboard.analytics import (
    BreakdownRow,
    ExpenseFilter,
    category_breakdown,
    current_month_filter,
    dashboard_stats,
    filter_records,
    format_compact,
    format_inr,
    payment_breakdown,
    spending_trend,
)
from expense_dashboard.models import ExpenseRecord

NOW = datetime(2024, 3, 20, 12, 0, 0)


def _rec(idx: int, day: datetime, category: str, amount: int, payment: str) -> ExpenseRecord:
    return ExpenseRecord(
        id=f"r{idx}",
        recorded_at=day,
        expense_date=day,
        category=category,
        amount=Decimal(amount),
        description=category,
        payment_method=payment,
        receipt_required=False,
        importance=3,
    )


RECORDS = [
    _rec(1, datetime(2024, 3, 18), "Food", 100, "UPI"),
    _rec(2, datetime(2024, 3, 2), "Food", 300, "Cash"),
    _rec(3, datetime(2024, 2, 25), "Transport", 1000, "Cash"),
    _rec(4, datetime(2024, 1, 1), "Home", 50, "UPI"),
]


def test_dashboard_stats():
    stats = dashboard_stats(RECORDS, now=NOW)

    assert stats.total_spent == Decimal(1450)
    assert stats.monthly_spent == Decimal(400)
    # Last 30 days: Mar 18, Mar 2 and Feb 25.
    assert stats.average_daily == Decimal(1400) / 30
    assert stats.transaction_count == 4
    assert stats.highest_transaction == Decimal(1000)
    assert stats.most_used_category == "Food"
    # UPI and Cash tie on count; the first seen wins.
    assert stats.most_used_payment == "UPI"


def test_dashboard_stats_empty():
    stats = dashboard_stats([], now=NOW)
    assert stats.total_spent == 0
    assert stats.transaction_count == 0
    assert stats.most_used_category == "Other"
    assert stats.most_used_payment == "UPI"


def test_breakdowns_sorted_by_total():
    assert category_breakdown(RECORDS) == [
        BreakdownRow("Transport", Decimal(1000), 1),
        BreakdownRow("Food", Decimal(400), 2),
        BreakdownRow("Home", Decimal(50), 1),
    ]
    assert [r.name for r in payment_breakdown(RECORDS)] == ["Cash", "UPI"]


def test_spending_trend_zero_fills_days():
    trend = spending_trend(RECORDS, days=3, now=NOW)
    assert [p.day for p in trend] == [date(2024, 3, 18), date(2024, 3, 19), date(2024, 3, 20)]
    assert [p.amount for p in trend] == [Decimal(100), Decimal(0), Decimal(0)]
    assert trend[0].label == "Mar 18"


def test_spending_trend_rejects_non_positive_days():
    with pytest.raises(ValueError):
        spending_trend(RECORDS, days=0)


def test_filter_by_date_category_and_payment():
    flt = ExpenseFilter(date_from=date(2024, 3, 1), categories=frozenset({"Food"}))
    assert [r.id for r in filter_records(RECORDS, flt)] == ["r1", "r2"]

    flt = ExpenseFilter(payment_methods=frozenset({"Cash"}), date_to=date(2024, 2, 29))
    assert [r.id for r in filter_records(RECORDS, flt)] == ["r3"]

    assert filter_records(RECORDS, ExpenseFilter()) == RECORDS


def test_current_month_filter_covers_whole_month():
    flt = current_month_filter(NOW)
    assert (flt.date_from, flt.date_to) == (date(2024, 3, 1), date(2024, 3, 31))
    dec = current_month_filter(datetime(2023, 12, 5))
    assert dec.date_to == date(2023, 12, 31)


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("1234567.5"), "₹12,34,568"),
        (999, "₹999"),
        (100000, "₹1,00,000"),
        (-1500, "-₹1,500"),
        (Decimal("0.4"), "₹0"),
        (Decimal("-0.4"), "₹0"),
        (Decimal("1e30"), "₹10," + "00," * 13 + "000"),
    ],
)
def test_format_inr(amount, expected):
    assert format_inr(amount) == expected


@pytest.mark.parametrize(
    ("num", "expected"),
    [
        (250000, "2.5L"),
        (3400, "3.4K"),
        (999, "999"),
        (Decimal("12.50"), "12.5"),
        (Decimal("1e30"), "1" + "0" * 25 + ".0L"),
    ],
)
def test_format_compact(num, expected):
    assert format_compact(num) == expected
