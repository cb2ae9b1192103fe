"""Data models and closed vocabularies for ``expense_dashboard``.

The canonical output unit is :class:`ExpenseRecord`, a frozen dataclass with
typed fields. Records are rebuilt from scratch on every successful fetch and
never mutated afterwards; an update is always a full replacement of the
collection.

User-entered data (new expenses headed for write-back) is validated with
Pydantic through :class:`ExpenseForm`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------

Category = Literal[
    "Mobile",
    "Groceries",
    "Home",
    "Loans",
    "EMI",
    "Transport",
    "Health",
    "Entertainment",
    "Shopping",
    "Food",
    "Utilities",
    "Other",
]

CATEGORIES: tuple[Category, ...] = (
    "Mobile",
    "Groceries",
    "Home",
    "Loans",
    "EMI",
    "Transport",
    "Health",
    "Entertainment",
    "Shopping",
    "Food",
    "Utilities",
    "Other",
)
DEFAULT_CATEGORY: Category = "Other"

PaymentMethod = Literal["UPI", "Cash", "Card", "Bank Transfer"]

PAYMENT_METHODS: tuple[PaymentMethod, ...] = ("UPI", "Cash", "Card", "Bank Transfer")
DEFAULT_PAYMENT_METHOD: PaymentMethod = "UPI"

Importance = Literal[1, 2, 3, 4, 5]

IMPORTANCE_MIN = 1
IMPORTANCE_MAX = 5
DEFAULT_IMPORTANCE: Importance = 3

# Slash-date reading order used when a cell is not an unambiguous timestamp.
DateOrder = Literal["dmy", "mdy"]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    """A single normalized expense.

    Attributes
    ----------
    id:
        Opaque identifier generated at assembly time (row position + epoch
        millis). Unique in practice, not guaranteed.
    recorded_at:
        When the row was created (form timestamp). Falls back to the expense
        date when the sheet has no timestamp column.
    expense_date:
        When the money was spent.
    amount:
        Strictly positive amount in the sheet's single implied currency.
    provisional:
        ``True`` for locally added records not yet confirmed by a re-fetch.
    """

    id: str
    recorded_at: datetime
    expense_date: datetime
    category: Category
    amount: Decimal
    description: str
    payment_method: PaymentMethod
    receipt_required: bool
    importance: Importance
    provisional: bool = False


def sort_newest_first(records: Iterable[ExpenseRecord]) -> list[ExpenseRecord]:
    """Return ``records`` ordered by ``expense_date`` descending (stable)."""

    return sorted(records, key=lambda r: r.expense_date, reverse=True)


# ---------------------------------------------------------------------------
# Source descriptor
# ---------------------------------------------------------------------------

_CSV_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"


@dataclass(frozen=True, slots=True)
class SheetSource:
    """Spreadsheet identifier plus sub-sheet selector (``gid``)."""

    sheet_id: str
    gid: str = "0"

    @property
    def csv_url(self) -> str:
        return _CSV_EXPORT_URL.format(sheet_id=self.sheet_id, gid=self.gid)

    def __str__(self) -> str:
        return f"{self.sheet_id}#gid={self.gid}"


# ---------------------------------------------------------------------------
# User-entered expenses
# ---------------------------------------------------------------------------


class ExpenseForm(BaseModel):
    """Validated data for a new expense entered by the user."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    expense_date: datetime
    category: Category
    amount: Decimal
    description: str = ""
    payment_method: PaymentMethod = DEFAULT_PAYMENT_METHOD
    receipt_required: bool = False
    importance: int = DEFAULT_IMPORTANCE

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v <= 0:
            raise ValueError("amount must be greater than zero")
        return v

    @field_validator("importance")
    @classmethod
    def _importance_in_range(cls, v: int) -> int:
        if IMPORTANCE_MIN <= v <= IMPORTANCE_MAX:
            return v
        raise ValueError(f"importance must be within [{IMPORTANCE_MIN},{IMPORTANCE_MAX}]")

    def to_record(self, *, record_id: str, recorded_at: datetime) -> ExpenseRecord:
        """Build a provisional :class:`ExpenseRecord` from this form."""

        return ExpenseRecord(
            id=record_id,
            recorded_at=recorded_at,
            expense_date=self.expense_date,
            category=self.category,
            amount=self.amount,
            description=self.description or self.category,
            payment_method=self.payment_method,
            receipt_required=self.receipt_required,
            importance=self.importance,
            provisional=True,
        )


__all__ = [
    "CATEGORIES",
    "Category",
    "DEFAULT_CATEGORY",
    "DEFAULT_IMPORTANCE",
    "DEFAULT_PAYMENT_METHOD",
    "DateOrder",
    "ExpenseForm",
    "ExpenseRecord",
    "IMPORTANCE_MAX",
    "IMPORTANCE_MIN",
    "Importance",
    "PAYMENT_METHODS",
    "PaymentMethod",
    "SheetSource",
    "sort_newest_first",
]
