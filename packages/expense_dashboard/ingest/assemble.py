"""Tokenized rows + inferred columns -> sorted :class:`ExpenseRecord` list.

Row rules
---------
- Rows with fewer than 3 fields are skipped (blank lines, stray notes).
- Rows whose amount parses to zero or less are skipped; the amount is never
  clamped.
- Every other field falls back to its coercer default, so a row is never
  rejected for a bad date, category, or flag.
- ``recorded_at`` reads the timestamp column, or the expense date text when
  the sheet has no timestamp column. A blank expense date cell reads the
  timestamp text instead.
- ``description`` falls back to the raw category text when blank.

The result is sorted by ``expense_date`` newest first. Callers (the CLI table,
the sync layer) depend on that order.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from datetime import datetime

from ..logging_setup import get_logger
from ..models import DateOrder, ExpenseRecord, sort_newest_first
from .coercers import (
    parse_amount,
    parse_category,
    parse_date,
    parse_flag,
    parse_importance,
    parse_payment_method,
)
from .columns import ColumnMap, infer_columns
from .csv_rows import iter_csv_rows

MIN_FIELDS_PER_ROW = 3

_logger = get_logger("expense_dashboard.ingest.assemble")


def _cell(values: Sequence[str], col: int | None) -> str:
    if col is None or col >= len(values):
        return ""
    return values[col] or ""


def assemble_records(
    rows: Iterable[Sequence[str]],
    columns: ColumnMap,
    *,
    date_order: DateOrder = "dmy",
    now: datetime | None = None,
    id_prefix: str = "sheet",
) -> list[ExpenseRecord]:
    """Build records from data rows (header excluded).

    Row positions in generated ids are 1-based, matching the data row's line
    in the sheet below the header.
    """

    stamp = int(time.time() * 1000)
    records: list[ExpenseRecord] = []
    short_rows = 0
    non_positive = 0

    for pos, values in enumerate(rows, start=1):
        if len(values) < MIN_FIELDS_PER_ROW:
            short_rows += 1
            continue

        amount = parse_amount(_cell(values, columns.amount))
        if amount <= 0:
            non_positive += 1
            continue

        timestamp_raw = _cell(values, columns.timestamp)
        date_raw = _cell(values, columns.date) or timestamp_raw
        if columns.timestamp is None:
            timestamp_raw = date_raw
        category_raw = _cell(values, columns.category)

        records.append(
            ExpenseRecord(
                id=f"{id_prefix}-{pos}-{stamp}",
                recorded_at=parse_date(timestamp_raw, date_order=date_order, now=now),
                expense_date=parse_date(date_raw, date_order=date_order, now=now),
                category=parse_category(category_raw),
                amount=amount,
                description=_cell(values, columns.description) or category_raw,
                payment_method=parse_payment_method(_cell(values, columns.payment)),
                receipt_required=parse_flag(_cell(values, columns.receipt)),
                importance=parse_importance(_cell(values, columns.importance)),
            )
        )

    if short_rows or non_positive:
        _logger.debug(
            "assemble:skipped short_rows=%d non_positive_amount=%d kept=%d",
            short_rows,
            non_positive,
            len(records),
        )
    return sort_newest_first(records)


def parse_expense_csv(
    csv_text: str,
    *,
    date_order: DateOrder = "dmy",
    now: datetime | None = None,
) -> list[ExpenseRecord]:
    """Parse a full CSV export (header row first) into sorted records.

    Empty input or a header-only sheet yields an empty list, not an error.
    """

    rows = iter_csv_rows(csv_text)
    headers = next(rows, None)
    if not headers:
        return []
    columns = infer_columns(headers)
    missing = columns.missing()
    if missing:
        _logger.debug("assemble:unmatched_columns fields=%s", ",".join(missing))
    return assemble_records(rows, columns, date_order=date_order, now=now)


__all__ = ["MIN_FIELDS_PER_ROW", "assemble_records", "parse_expense_csv"]
