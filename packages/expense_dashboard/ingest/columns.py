"""Header keyword matching: map semantic fields to column positions.

Sheets built from Google Forms or by hand name their columns freely
("Date of Expense", "Amount Spent (₹)", "Pay Mode", ...). Each semantic
field carries an ordered list of candidate substrings; a field resolves to
the *first header cell from the left* that contains any of its candidates.
That left-most rule is the deterministic tie-break when several columns
match. Unmatched fields resolve to ``None`` and the coercers fill defaults,
so an odd header row degrades the output instead of failing it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields

TIMESTAMP_KEYWORDS: tuple[str, ...] = ("timestamp", "time stamp", "created")
DATE_KEYWORDS: tuple[str, ...] = ("date of expense", "expense date", "date")
CATEGORY_KEYWORDS: tuple[str, ...] = ("category", "type")
AMOUNT_KEYWORDS: tuple[str, ...] = ("amount", "spent", "cost", "price")
DESCRIPTION_KEYWORDS: tuple[str, ...] = ("description", "desc", "note", "details")
PAYMENT_KEYWORDS: tuple[str, ...] = ("payment", "method", "pay")
RECEIPT_KEYWORDS: tuple[str, ...] = ("receipt",)
IMPORTANCE_KEYWORDS: tuple[str, ...] = ("importance", "priority", "scale")


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Column index per semantic field; ``None`` when no header matched."""

    timestamp: int | None = None
    date: int | None = None
    category: int | None = None
    amount: int | None = None
    description: int | None = None
    payment: int | None = None
    receipt: int | None = None
    importance: int | None = None

    def missing(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is None]


def find_column(headers: Sequence[str], keywords: Sequence[str]) -> int | None:
    """Return the index of the first header containing any of ``keywords``."""

    lowered = [k.lower() for k in keywords]
    for idx, header in enumerate(headers):
        h = header.strip().lower()
        if any(k in h for k in lowered):
            return idx
    return None


def infer_columns(headers: Sequence[str]) -> ColumnMap:
    return ColumnMap(
        timestamp=find_column(headers, TIMESTAMP_KEYWORDS),
        date=find_column(headers, DATE_KEYWORDS),
        category=find_column(headers, CATEGORY_KEYWORDS),
        amount=find_column(headers, AMOUNT_KEYWORDS),
        description=find_column(headers, DESCRIPTION_KEYWORDS),
        payment=find_column(headers, PAYMENT_KEYWORDS),
        receipt=find_column(headers, RECEIPT_KEYWORDS),
        importance=find_column(headers, IMPORTANCE_KEYWORDS),
    )


__all__ = ["ColumnMap", "find_column", "infer_columns"]
