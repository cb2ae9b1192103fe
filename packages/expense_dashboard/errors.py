"""Pipeline-level error types.

Only structural and access problems are raised. Row- and field-level data
problems never surface here; the coercers and the assembler absorb them.
Every error carries a ``user_message`` suitable for direct display.
"""

from __future__ import annotations


class SheetError(Exception):
    """Base class for user-displayable sheet ingestion failures."""

    default_message = "Failed to load sheet"

    def __init__(self, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class InvalidSourceError(SheetError):
    """The supplied URL does not look like a spreadsheet link."""

    default_message = "Invalid Google Sheets URL"


class FetchFailedError(SheetError):
    """The network round trip did not succeed."""

    default_message = "Failed to fetch sheet"

    def __init__(
        self,
        user_message: str | None = None,
        *,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        self.status = status
        self.reason = reason
        super().__init__(user_message)


class FetchTimeoutError(FetchFailedError):
    default_message = "Timed out while fetching sheet"


class SourceNotPublicError(SheetError):
    """The provider answered with an HTML page instead of CSV data."""

    default_message = (
        "Sheet is not publicly accessible. Please make sure the sheet is published "
        "or shared with 'Anyone with the link'."
    )


class WriteBackError(SheetError):
    default_message = "Failed to submit expense to webhook"


__all__ = [
    "FetchFailedError",
    "FetchTimeoutError",
    "InvalidSourceError",
    "SheetError",
    "SourceNotPublicError",
    "WriteBackError",
]
