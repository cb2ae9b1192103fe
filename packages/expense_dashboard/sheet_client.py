"""Thin client for public Google Sheets CSV exports.

Non-streaming GET of ``/export?format=csv&gid=<gid>`` with ``urllib``. A sheet
that is not shared publicly answers ``200`` with an HTML sign-in page rather
than an error status, so the body is checked for document markup before it is
handed to the CSV parser.

No retries and no authentication; the caller owns refresh policy.
"""

from __future__ import annotations

import http.client
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import TypeAlias

from .errors import FetchFailedError, FetchTimeoutError, SourceNotPublicError
from .ingest.assemble import parse_expense_csv
from .ingest.sheet_url import resolve_sheet_url
from .logging_setup import get_logger
from .models import DateOrder, ExpenseRecord, SheetSource

DEFAULT_TIMEOUT = 30.0

# Signature of the blocking fetch step; tests inject stubs with this shape.
FetchFn: TypeAlias = Callable[..., str]

_logger = get_logger("expense_dashboard.sheet_client")


def fetch_csv_text(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """GET ``url`` and return the decoded body.

    Raises ``FetchTimeoutError`` when the request exceeds ``timeout`` and
    ``FetchFailedError`` for any other transport failure or non-2xx status.
    """

    req = urllib.request.Request(url, method="GET")
    req.add_header("Accept", "text/csv, text/plain;q=0.9, */*;q=0.1")

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            charset = resp.headers.get_content_charset() or "utf-8"
            body = resp.read()
    except urllib.error.HTTPError as e:
        raise FetchFailedError(
            f"Failed to fetch sheet: {e.code} {e.reason}", status=e.code, reason=str(e.reason)
        ) from e
    except TimeoutError as e:
        raise FetchTimeoutError() from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, TimeoutError):
            raise FetchTimeoutError() from e
        raise FetchFailedError(f"Failed to fetch sheet: {e.reason}", reason=str(e.reason)) from e
    except (OSError, http.client.HTTPException) as e:
        raise FetchFailedError(f"Failed to fetch sheet: {e}") from e

    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        _logger.debug("sheet:unknown_charset charset=%s", charset)
        return body.decode("utf-8", errors="replace")


def looks_like_html(text: str) -> bool:
    """Heuristic for "the provider sent a web page, not CSV"."""

    head = text.lower()
    return "<!doctype html" in head or "<html" in head


def load_source(
    source: SheetSource,
    *,
    fetch: FetchFn = fetch_csv_text,
    timeout: float = DEFAULT_TIMEOUT,
    date_order: DateOrder = "dmy",
) -> list[ExpenseRecord]:
    """Fetch and parse an already resolved source.

    Raises ``FetchFailedError`` when the request fails and
    ``SourceNotPublicError`` when the body is an HTML page, which is never
    parsed as CSV.
    """

    text = fetch(source.csv_url, timeout=timeout)
    if looks_like_html(text):
        _logger.info("sheet:not_public source=%s", source)
        raise SourceNotPublicError()
    records = parse_expense_csv(text, date_order=date_order)
    _logger.debug("sheet:parsed source=%s records=%d", source, len(records))
    return records


def load_sheet(
    sheet_url: str,
    *,
    fetch: FetchFn = fetch_csv_text,
    timeout: float = DEFAULT_TIMEOUT,
    date_order: DateOrder = "dmy",
) -> list[ExpenseRecord]:
    """Resolve, fetch, and parse a sheet link in one blocking call.

    Raises ``InvalidSourceError`` before any request when ``sheet_url`` is not
    a spreadsheet link; otherwise behaves like :func:`load_source`.
    """

    source = resolve_sheet_url(sheet_url)
    return load_source(source, fetch=fetch, timeout=timeout, date_order=date_order)


__all__ = [
    "DEFAULT_TIMEOUT",
    "FetchFn",
    "fetch_csv_text",
    "load_sheet",
    "load_source",
    "looks_like_html",
]
