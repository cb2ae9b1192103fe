"""Append-only write-back of a single expense through a webhook.

The webhook (typically a Google Apps Script web app bound to the sheet) is
expected to append one row per POST. A 2xx answer only means "accepted for
write"; the row becomes authoritative once a later fetch reads it back.

Payload keys mirror the sheet's header names so the appended row is picked up
by the same header inference as every other row.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .errors import WriteBackError
from .logging_setup import get_logger
from .models import ExpenseForm

DEFAULT_TIMEOUT = 30.0

_logger = get_logger("expense_dashboard.webhook")


def build_payload(form: ExpenseForm, *, recorded_at: datetime) -> dict[str, Any]:
    return {
        "Timestamp": recorded_at.isoformat(timespec="seconds"),
        "Date of Expense": form.expense_date.date().isoformat(),
        "Category": form.category,
        "Amount": str(form.amount),
        "Description": form.description or form.category,
        "Payment Method": form.payment_method,
        "Receipt Required": "Yes" if form.receipt_required else "No",
        "Importance": form.importance,
    }


def post_expense(
    webhook_url: str,
    payload: Mapping[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """POST ``payload`` as JSON to ``webhook_url``.

    Raises ``WriteBackError`` for transport failures and non-2xx answers. The
    response body is ignored.
    """

    data = json.dumps(dict(payload)).encode("utf-8")
    req = urllib.request.Request(webhook_url, data=data, method="POST")
    req.add_header("Content-Type", "application/json")

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = resp.status
    except urllib.error.HTTPError as e:
        try:
            err_body = e.read().decode("utf-8", errors="replace")
        except Exception:  # noqa: BLE001 - error body is best-effort context only
            err_body = ""
        raise WriteBackError(f"Webhook rejected expense: {e.code} {e.reason} {err_body}".strip()) from e
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise WriteBackError(f"Failed to reach webhook: {e}") from e

    _logger.debug("webhook:accepted status=%s", status)


__all__ = ["build_payload", "post_expense"]
