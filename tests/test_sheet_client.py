import http.client
import urllib.error
from decimal import Decimal

import pytest
from helpers.sheet_stub import EXPENSES_CSV, NOT_PUBLIC_HTML, SHEET_ID, SHEET_URL, FetchStub

import expense_dashboard.sheet_client as sheet_client
from expense_dashboard.errors import (
    FetchFailedError,
    FetchTimeoutError,
    InvalidSourceError,
    SourceNotPublicError,
)
from expense_dashboard.sheet_client import fetch_csv_text, load_sheet, looks_like_html


def test_load_sheet_fetches_export_url_and_parses():
    fetch = FetchStub(EXPENSES_CSV)
    recs = load_sheet(SHEET_URL, fetch=fetch, timeout=7)

    assert fetch.calls == [
        (f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/export?format=csv&gid=0", 7)
    ]
    assert [r.amount for r in recs] == [Decimal("1200"), Decimal("450")]


def test_html_body_is_not_public_and_never_parsed(monkeypatch):
    def _boom(*args, **kwargs):
        raise AssertionError("parser must not run on HTML")

    monkeypatch.setattr(sheet_client, "parse_expense_csv", _boom)
    with pytest.raises(SourceNotPublicError) as ei:
        load_sheet(SHEET_URL, fetch=FetchStub(NOT_PUBLIC_HTML))
    assert "Anyone with the link" in ei.value.user_message


def test_invalid_url_fails_before_any_request():
    fetch = FetchStub(EXPENSES_CSV)
    with pytest.raises(InvalidSourceError):
        load_sheet("https://example.com/sheet", fetch=fetch)
    assert fetch.calls == []


def test_fetch_errors_propagate():
    with pytest.raises(FetchFailedError):
        load_sheet(SHEET_URL, fetch=FetchStub(FetchFailedError("boom")))


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("<!DOCTYPE html><html></html>", True),
        ("  <HTML lang='en'>", True),
        ("Date,Amount\n2024-01-01,10\n", False),
    ],
)
def test_looks_like_html(text, expected):
    assert looks_like_html(text) is expected


class _FakeResponse:
    def __init__(self, body: bytes, charset: str | None = "utf-8") -> None:
        self._body = body
        self.headers = self
        self._charset = charset

    def get_content_charset(self):
        return self._charset

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_fetch_csv_text_decodes_body(monkeypatch):
    seen = {}

    def _urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        return _FakeResponse("Amount\n₹10\n".encode())

    monkeypatch.setattr(sheet_client.urllib.request, "urlopen", _urlopen)
    assert fetch_csv_text("https://example.test/x.csv", timeout=3) == "Amount\n₹10\n"
    assert seen == {"url": "https://example.test/x.csv", "timeout": 3}


def test_fetch_csv_text_maps_http_error(monkeypatch):
    def _urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", {}, None)

    monkeypatch.setattr(sheet_client.urllib.request, "urlopen", _urlopen)
    with pytest.raises(FetchFailedError) as ei:
        fetch_csv_text("https://example.test/x.csv")
    assert ei.value.status == 404
    assert ei.value.user_message == "Failed to fetch sheet: 404 Not Found"


def test_fetch_csv_text_maps_timeouts(monkeypatch):
    def _urlopen(req, timeout):
        raise urllib.error.URLError(TimeoutError("timed out"))

    monkeypatch.setattr(sheet_client.urllib.request, "urlopen", _urlopen)
    with pytest.raises(FetchTimeoutError):
        fetch_csv_text("https://example.test/x.csv")


def test_fetch_csv_text_unknown_charset_falls_back_to_utf8(monkeypatch):
    def _urlopen(req, timeout):
        return _FakeResponse("Amount\n₹10\n".encode(), charset="bogus-cs")

    monkeypatch.setattr(sheet_client.urllib.request, "urlopen", _urlopen)
    assert fetch_csv_text("https://example.test/x.csv") == "Amount\n₹10\n"


class _TruncatedResponse(_FakeResponse):
    def read(self):
        raise http.client.IncompleteRead(b"Amount\n1", 40)


def test_fetch_csv_text_maps_truncated_body(monkeypatch):
    monkeypatch.setattr(
        sheet_client.urllib.request, "urlopen", lambda req, timeout: _TruncatedResponse(b"")
    )
    with pytest.raises(FetchFailedError) as ei:
        fetch_csv_text("https://example.test/x.csv")
    assert ei.value.user_message.startswith("Failed to fetch sheet: ")
    assert ei.value.status is None
