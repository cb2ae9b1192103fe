"""Public interface for the ``expense_dashboard`` package.

This module exposes the package's ingestion pipeline, sync orchestrator, and
public models/types as the stable import surface. There is no runtime logic
here, only symbol re-exports.
"""

from .errors import (
    FetchFailedError,
    FetchTimeoutError,
    InvalidSourceError,
    SheetError,
    SourceNotPublicError,
    WriteBackError,
)
from .ingest import parse_expense_csv, parse_sheet_url, resolve_sheet_url
from .models import (
    CATEGORIES,
    PAYMENT_METHODS,
    Category,
    ExpenseForm,
    ExpenseRecord,
    PaymentMethod,
    SheetSource,
)
from .settings_store import SettingsStore, StoredSettings
from .sheet_client import load_sheet
from .sync import SheetSync, SyncState

__all__ = [
    # Pipeline
    "parse_sheet_url",
    "resolve_sheet_url",
    "parse_expense_csv",
    "load_sheet",
    "SheetSync",
    "SyncState",
    "SettingsStore",
    "StoredSettings",
    # Models / types
    "CATEGORIES",
    "PAYMENT_METHODS",
    "Category",
    "PaymentMethod",
    "ExpenseRecord",
    "ExpenseForm",
    "SheetSource",
    # Errors
    "SheetError",
    "InvalidSourceError",
    "FetchFailedError",
    "FetchTimeoutError",
    "SourceNotPublicError",
    "WriteBackError",
]
