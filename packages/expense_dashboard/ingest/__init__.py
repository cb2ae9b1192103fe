"""Spreadsheet ingestion: URL -> CSV rows -> column map -> typed records."""

from .assemble import assemble_records, parse_expense_csv
from .columns import ColumnMap, find_column, infer_columns
from .csv_rows import iter_csv_rows, split_csv_line
from .sheet_url import build_csv_url, parse_sheet_url, resolve_sheet_url

__all__ = [
    "ColumnMap",
    "assemble_records",
    "build_csv_url",
    "find_column",
    "infer_columns",
    "iter_csv_rows",
    "parse_expense_csv",
    "parse_sheet_url",
    "resolve_sheet_url",
    "split_csv_line",
]
