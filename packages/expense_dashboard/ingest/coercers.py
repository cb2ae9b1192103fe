"""Total value parsers: raw cell text -> typed value.

Every function here accepts ``None`` or arbitrary text and never raises; a
cell that cannot be read yields the documented default instead. Whether a
*row* survives is decided by the assembler (only a non-positive amount drops
a row), never by these helpers.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from ..models import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_IMPORTANCE,
    DEFAULT_PAYMENT_METHOD,
    IMPORTANCE_MAX,
    IMPORTANCE_MIN,
    PAYMENT_METHODS,
    Category,
    DateOrder,
    Importance,
    PaymentMethod,
)

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Named-month and unambiguous forms tried after ISO 8601.
_NAMED_DATE_FORMATS: tuple[str, ...] = (
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
)

# a/b/yyyy with an optional time, e.g. Google Forms "3/15/2024 14:05:33".
_SLASH_DATE_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:[ T,]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)


def _to_local_naive(dt: datetime) -> datetime:
    # Keep every record comparable: aware values are shifted to local time.
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def _parse_timestamp(s: str) -> datetime | None:
    try:
        return _to_local_naive(datetime.fromisoformat(s))
    except (ValueError, OverflowError):
        pass
    for fmt in _NAMED_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def _parse_slash_date(s: str, order: DateOrder) -> datetime | None:
    m = _SLASH_DATE_RE.match(s)
    if m is None:
        return None
    first, second, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    day, month = (first, second) if order == "dmy" else (second, first)
    hour = int(m.group(4) or 0)
    minute = int(m.group(5) or 0)
    second_ = int(m.group(6) or 0)
    try:
        return datetime(year, month, day, hour, minute, second_)
    except ValueError:
        return None


def parse_date(
    value: str | None,
    *,
    date_order: DateOrder = "dmy",
    now: datetime | None = None,
) -> datetime:
    """Parse a cell into a datetime, falling back to ``now``.

    Resolution order: ISO 8601 / named-month timestamps, then ``a/b/yyyy`` read
    in ``date_order``, then the same text read in the opposite order (only
    reachable when the configured reading is not a real calendar date, e.g.
    ``03/25/2024`` under ``"dmy"``), then ``now`` (default: current time).
    """

    fallback = now if now is not None else datetime.now()
    if not value:
        return fallback
    s = value.strip()
    if not s:
        return fallback

    parsed = _parse_timestamp(s)
    if parsed is not None:
        return parsed

    other: DateOrder = "mdy" if date_order == "dmy" else "dmy"
    for order in (date_order, other):
        parsed = _parse_slash_date(s, order)
        if parsed is not None:
            return parsed

    return fallback


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_AMOUNT_NOISE_RE = re.compile(r"[₹$€£¥,\s]")
_LEADING_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_ZERO = Decimal(0)
# Integer digits beyond the default decimal precision cannot be summed exactly.
_MAX_AMOUNT_DIGITS = 28


def parse_amount(value: str | None) -> Decimal:
    """Read an amount like ``"₹1,234.50"``; unreadable text gives ``Decimal(0)``.

    Only the leading number is read, so ``"450/-"`` is ``450``. Values with
    more than 28 integer digits (``"1e30"``) are treated as unreadable.
    """

    if not value:
        return _ZERO
    cleaned = _AMOUNT_NOISE_RE.sub("", value)
    m = _LEADING_NUMBER_RE.match(cleaned)
    if m is None:
        return _ZERO
    try:
        d = Decimal(m.group(0))
    except InvalidOperation:
        return _ZERO
    if not d.is_finite() or d.adjusted() >= _MAX_AMOUNT_DIGITS:
        return _ZERO
    return d


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

_CATEGORY_BY_LOWER: dict[str, Category] = {c.lower(): c for c in CATEGORIES}
_PAYMENT_BY_LOWER: dict[str, PaymentMethod] = {m.lower(): m for m in PAYMENT_METHODS}

# Checked in order; the first group with a matching token wins.
_PAYMENT_HINTS: tuple[tuple[tuple[str, ...], PaymentMethod], ...] = (
    (("upi",), "UPI"),
    (("cash",), "Cash"),
    (("card", "credit", "debit"), "Card"),
    (("bank", "transfer", "neft", "imps"), "Bank Transfer"),
)


def parse_category(value: str | None) -> Category:
    if not value:
        return DEFAULT_CATEGORY
    return _CATEGORY_BY_LOWER.get(value.strip().lower(), DEFAULT_CATEGORY)


def parse_payment_method(value: str | None) -> PaymentMethod:
    """Classify free text such as ``"Paytm UPI"`` or ``"NEFT transfer"``."""

    if not value:
        return DEFAULT_PAYMENT_METHOD
    normalized = value.strip().lower()
    for tokens, method in _PAYMENT_HINTS:
        if any(t in normalized for t in tokens):
            return method
    return _PAYMENT_BY_LOWER.get(normalized, DEFAULT_PAYMENT_METHOD)


# ---------------------------------------------------------------------------
# Flags and bounded integers
# ---------------------------------------------------------------------------


def parse_flag(value: str | None) -> bool:
    return bool(value) and "yes" in value.lower()


_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_importance(value: str | None) -> Importance:
    if not value:
        return DEFAULT_IMPORTANCE
    m = _LEADING_INT_RE.match(value)
    if m is None:
        return DEFAULT_IMPORTANCE
    n = int(m.group(1))
    if IMPORTANCE_MIN <= n <= IMPORTANCE_MAX:
        return n  # type: ignore[return-value]
    return DEFAULT_IMPORTANCE


__all__ = [
    "parse_amount",
    "parse_category",
    "parse_date",
    "parse_flag",
    "parse_importance",
    "parse_payment_method",
]
