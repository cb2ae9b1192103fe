"""Dashboard aggregations over a record collection.

All functions are pure: they take records (any iterable, typically the
newest-first collection from the sync layer) and return small frozen
dataclasses. Amounts stay ``Decimal`` throughout; formatting for display is
done by :func:`format_inr` and :func:`format_compact`.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_PAYMENT_METHOD,
    Category,
    ExpenseRecord,
    PaymentMethod,
)

_ZERO = Decimal(0)
AVERAGE_WINDOW_DAYS = 30

# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_spent: Decimal
    monthly_spent: Decimal
    average_daily: Decimal
    transaction_count: int
    highest_transaction: Decimal
    most_used_category: Category
    most_used_payment: PaymentMethod


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(now.date().replace(day=1), time.min)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    return start, next_month - timedelta(microseconds=1)


def dashboard_stats(
    records: Iterable[ExpenseRecord], *, now: datetime | None = None
) -> DashboardStats:
    """Compute the headline numbers shown above the charts.

    ``average_daily`` spreads the last 30 days of spending over 30 days,
    whether or not every day had an expense. The "most used" values count
    transactions, not amounts; ties go to the value seen first.
    """

    items = list(records)
    if not items:
        return DashboardStats(
            total_spent=_ZERO,
            monthly_spent=_ZERO,
            average_daily=_ZERO,
            transaction_count=0,
            highest_transaction=_ZERO,
            most_used_category=DEFAULT_CATEGORY,
            most_used_payment=DEFAULT_PAYMENT_METHOD,
        )

    now = now if now is not None else datetime.now()
    month_start, month_end = _month_bounds(now)
    window_start = now - timedelta(days=AVERAGE_WINDOW_DAYS)

    total = sum((r.amount for r in items), _ZERO)
    monthly = sum((r.amount for r in items if month_start <= r.expense_date <= month_end), _ZERO)
    recent = sum((r.amount for r in items if r.expense_date >= window_start), _ZERO)

    categories = Counter(r.category for r in items)
    payments = Counter(r.payment_method for r in items)

    return DashboardStats(
        total_spent=total,
        monthly_spent=monthly,
        average_daily=recent / AVERAGE_WINDOW_DAYS,
        transaction_count=len(items),
        highest_transaction=max(r.amount for r in items),
        most_used_category=categories.most_common(1)[0][0],
        most_used_payment=payments.most_common(1)[0][0],
    )


# ---------------------------------------------------------------------------
# Breakdowns and trend
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BreakdownRow:
    name: str
    total: Decimal
    count: int


def _breakdown(pairs: Iterable[tuple[str, Decimal]]) -> list[BreakdownRow]:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for name, amount in pairs:
        totals[name] = totals.get(name, _ZERO) + amount
        counts[name] = counts.get(name, 0) + 1
    rows = [BreakdownRow(name=n, total=totals[n], count=counts[n]) for n in totals]
    return sorted(rows, key=lambda r: r.total, reverse=True)


def category_breakdown(records: Iterable[ExpenseRecord]) -> list[BreakdownRow]:
    """Total and count per category, largest total first."""

    return _breakdown((r.category, r.amount) for r in records)


def payment_breakdown(records: Iterable[ExpenseRecord]) -> list[BreakdownRow]:
    """Total and count per payment method, largest total first."""

    return _breakdown((r.payment_method, r.amount) for r in records)


@dataclass(frozen=True, slots=True)
class TrendPoint:
    day: date
    amount: Decimal

    @property
    def label(self) -> str:
        return self.day.strftime("%b %d")


def spending_trend(
    records: Iterable[ExpenseRecord], *, days: int = 30, now: datetime | None = None
) -> list[TrendPoint]:
    """Daily totals for the last ``days`` days (today included), oldest first."""

    if days < 1:
        raise ValueError("days must be a positive integer")
    today = (now if now is not None else datetime.now()).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    totals = dict.fromkeys(window, _ZERO)
    for r in records:
        d = r.expense_date.date()
        if d in totals:
            totals[d] += r.amount
    return [TrendPoint(day=d, amount=totals[d]) for d in window]


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExpenseFilter:
    """Dashboard filter. Empty sets and ``None`` bounds mean "no constraint".

    Date bounds are inclusive calendar days.
    """

    date_from: date | None = None
    date_to: date | None = None
    categories: frozenset[Category] = field(default_factory=frozenset)
    payment_methods: frozenset[PaymentMethod] = field(default_factory=frozenset)

    def matches(self, record: ExpenseRecord) -> bool:
        d = record.expense_date.date()
        if self.date_from is not None and d < self.date_from:
            return False
        if self.date_to is not None and d > self.date_to:
            return False
        if self.categories and record.category not in self.categories:
            return False
        if self.payment_methods and record.payment_method not in self.payment_methods:
            return False
        return True


def filter_records(
    records: Iterable[ExpenseRecord], flt: ExpenseFilter
) -> list[ExpenseRecord]:
    return [r for r in records if flt.matches(r)]


def current_month_filter(now: datetime | None = None) -> ExpenseFilter:
    start, end = _month_bounds(now if now is not None else datetime.now())
    return ExpenseFilter(date_from=start.date(), date_to=end.date())


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567: last three digits, then pairs.
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs: list[str] = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs) + "," + tail


def format_inr(amount: Decimal | int | float) -> str:
    """Format as whole rupees with Indian digit grouping, e.g. ``₹12,34,567``."""

    # Exact at any magnitude; quantize() would trap past the context precision.
    q = Decimal(str(amount)).to_integral_value(rounding=ROUND_HALF_UP)
    sign = "-" if q < 0 else ""
    return f"{sign}₹{_group_indian(format(q.copy_abs(), 'f'))}"


def format_compact(num: Decimal | int | float) -> str:
    """Short form for card labels: ``1.2L`` (lakh), ``3.4K``, else as-is."""

    d = Decimal(str(num))
    if d >= 100_000:
        return f"{d / 100_000:.1f}L"
    if d >= 1_000:
        return f"{d / 1_000:.1f}K"
    return str(d.normalize()) if d != d.to_integral_value() else str(int(d))


__all__ = [
    "BreakdownRow",
    "DashboardStats",
    "ExpenseFilter",
    "TrendPoint",
    "category_breakdown",
    "current_month_filter",
    "dashboard_stats",
    "filter_records",
    "format_compact",
    "format_inr",
    "payment_breakdown",
    "spending_trend",
]
