from datetime import datetime

import pytest
from helpers.sheet_stub import EXPENSES_CSV, SHEET_URL, FetchStub, PostStub
from typer.testing import CliRunner

import expense_dashboard.cli as cli
from expense_dashboard.analytics import current_month_filter
from expense_dashboard.cli import app
from expense_dashboard.settings_store import SettingsStore

runner = CliRunner()


@pytest.fixture
def fetch(monkeypatch: pytest.MonkeyPatch) -> FetchStub:
    stub = FetchStub(EXPENSES_CSV)
    monkeypatch.setattr(cli, "fetch_csv_text", stub)
    return stub


@pytest.fixture
def post(monkeypatch: pytest.MonkeyPatch) -> PostStub:
    stub = PostStub()
    monkeypatch.setattr(cli, "post_expense", stub)
    return stub


def _connect(*extra: str):
    result = runner.invoke(app, ["connect", SHEET_URL, *extra])
    assert result.exit_code == 0, result.output
    return result


def test_show_sample_data():
    result = runner.invoke(app, ["show", "--sample", "--limit", "5"])
    assert result.exit_code == 0, result.output
    assert "Source: sample data" in result.output
    assert "Showing 5 of 150 expenses" in result.output


def test_show_without_connection_falls_back_to_sample():
    result = runner.invoke(app, ["show"])
    assert result.exit_code == 0, result.output
    assert "no sheet connected" in result.output


def test_connect_then_show_uses_saved_sheet(fetch: FetchStub):
    result = _connect()
    assert "Connected to 1AbC_dEf-123#gid=0: 2 expenses loaded." in result.output
    assert SettingsStore().load().sheet_url == SHEET_URL

    result = runner.invoke(app, ["show", "--payment", "card"])
    assert result.exit_code == 0, result.output
    assert "Source: sheet 1AbC_dEf-123#gid=0" in result.output
    assert "Showing 1 of 1 expenses" in result.output
    assert len(fetch.calls) == 2


def test_connect_invalid_url_reports_error(fetch: FetchStub):
    result = runner.invoke(app, ["connect", "https://example.com/nope"])
    assert result.exit_code == 1
    assert "Error: Invalid Google Sheets URL" in result.output
    assert fetch.calls == []


def test_show_this_month(fetch: FetchStub, monkeypatch: pytest.MonkeyPatch):
    _connect()
    monkeypatch.setattr(
        cli, "current_month_filter", lambda: current_month_filter(datetime(2024, 3, 20))
    )
    result = runner.invoke(app, ["show", "--this-month"])
    assert result.exit_code == 0, result.output
    assert "Showing 2 of 2 expenses" in result.output

    monkeypatch.setattr(
        cli, "current_month_filter", lambda: current_month_filter(datetime(2024, 4, 2))
    )
    result = runner.invoke(app, ["summary", "--this-month"])
    assert result.exit_code == 0, result.output
    assert "Transactions: 0" in result.output


def test_this_month_conflicts_with_explicit_dates():
    result = runner.invoke(app, ["show", "--sample", "--this-month", "--from", "2024-03-01"])
    assert result.exit_code != 0


def test_show_rejects_unknown_category():
    result = runner.invoke(app, ["show", "--sample", "--category", "Dining"])
    assert result.exit_code != 0


def test_disconnect(fetch: FetchStub):
    _connect()
    result = runner.invoke(app, ["disconnect"])
    assert result.exit_code == 0
    assert "Disconnected." in result.output

    result = runner.invoke(app, ["disconnect"])
    assert "No sheet was connected." in result.output


def test_summary_prints_stats(fetch: FetchStub):
    _connect()
    result = runner.invoke(app, ["summary", "--days", "3"])
    assert result.exit_code == 0, result.output
    assert "Total spent: ₹1,650" in result.output
    assert "Transactions: 2" in result.output
    # Card and UPI tie; the newest record (Transport, Card) is seen first.
    assert "Top payment: Card" in result.output


def test_add_expense_without_webhook_fails(post: PostStub):
    result = runner.invoke(
        app,
        ["add-expense", "--amount", "450", "--category", "food", "--payment", "cash"],
    )
    assert result.exit_code == 1
    assert "No webhook configured" in result.output
    assert "Added" not in result.output
    assert post.calls == []


def test_add_expense_posts_to_saved_webhook(fetch: FetchStub, post: PostStub):
    _connect("--webhook-url", "https://hook.test/exec")
    result = runner.invoke(
        app,
        [
            "add-expense",
            "--amount",
            "99.50",
            "--category",
            "Health",
            "--payment",
            "UPI",
            "--description",
            "Pharmacy",
            "--date",
            "2024-03-19",
            "--receipt",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Submitted to webhook" in result.output
    ((url, payload),) = post.calls
    assert url == "https://hook.test/exec"
    assert payload["Date of Expense"] == "2024-03-19"
    assert payload["Receipt Required"] == "Yes"


def test_add_expense_rejects_bad_amount():
    result = runner.invoke(
        app, ["add-expense", "--amount=-3", "--category", "Food", "--payment", "UPI"]
    )
    assert result.exit_code == 1
    assert "Error: invalid amount" in result.output


def test_watch_prints_a_line_per_refresh(fetch: FetchStub):
    _connect()
    result = runner.invoke(app, ["watch", "--interval", "0.01", "--cycles", "2"])
    assert result.exit_code == 0, result.output
    assert result.output.count("expenses (updated") == 3


def test_watch_requires_a_connection():
    result = runner.invoke(app, ["watch", "--cycles", "1"])
    assert result.exit_code == 1
    assert "No sheet connected" in result.output


def test_log_level_option_logs_to_each_invocation(fetch: FetchStub):
    for _ in range(2):
        result = runner.invoke(app, ["--log-level", "INFO", "connect", SHEET_URL])
        assert result.exit_code == 0, result.output
        assert "sync:fetch_ok" in result.output
