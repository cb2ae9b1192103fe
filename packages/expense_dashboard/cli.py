# ruff: noqa: I001
"""CLI for the ``expense_dashboard`` package.

A Typer console interface over :class:`~expense_dashboard.sync.SheetSync` and
the pure aggregations in :mod:`expense_dashboard.analytics`. Environment
variables are loaded from a local ``.env`` using ``python-dotenv`` before any
command runs:

- ``EXPENSE_DASHBOARD_HOME``: directory holding ``settings.json``.
- ``EXPENSE_DASHBOARD_LOG_LEVEL``: logging level name.
- ``EXPENSE_DASHBOARD_DATE_ORDER``: ``dmy`` (default) or ``mdy``.
- ``EXPENSE_DASHBOARD_TIMEOUT``: seconds per fetch or webhook call.
- ``EXPENSE_DASHBOARD_REFRESH_SECONDS``: default ``watch`` interval.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .analytics import (
    BreakdownRow,
    ExpenseFilter,
    category_breakdown,
    current_month_filter,
    dashboard_stats,
    filter_records,
    format_compact,
    format_inr,
    payment_breakdown,
    spending_trend,
)
from .errors import SheetError
from .logging_setup import configure_logging, get_logger
from .models import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_IMPORTANCE,
    DEFAULT_PAYMENT_METHOD,
    PAYMENT_METHODS,
    DateOrder,
    ExpenseForm,
    ExpenseRecord,
)
from .sample_data import generate_sample_expenses
from .settings_store import SettingsStore
from .sheet_client import DEFAULT_TIMEOUT, fetch_csv_text
from .sync import DEFAULT_REFRESH_INTERVAL, SheetSync
from .term_ui import choose_option
from .webhook import post_expense

_logger = get_logger("expense_dashboard.cli")

console = Console()
err_console = Console(stderr=True)


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def _env_seconds(name: str, default: float) -> float:
    """Read a positive number of seconds from ``name``, else ``default``."""

    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if value <= 0:
        _logger.warning("cli:bad_env name=%s value=%r using=%s", name, raw, default)
        return default
    return value


def _resolve_date_order() -> DateOrder:
    raw = (os.getenv("EXPENSE_DASHBOARD_DATE_ORDER") or "dmy").strip().lower()
    if raw == "mdy":
        return "mdy"
    if raw != "dmy":
        _logger.warning("cli:bad_env name=EXPENSE_DASHBOARD_DATE_ORDER value=%r using=dmy", raw)
    return "dmy"


def _make_sync(*, refresh_interval: float | None = None) -> SheetSync:
    # ``fetch``/``post`` are looked up here so tests can monkeypatch them on
    # this module.
    return SheetSync(
        SettingsStore(),
        fetch=fetch_csv_text,
        post=post_expense,
        timeout=_env_seconds("EXPENSE_DASHBOARD_TIMEOUT", DEFAULT_TIMEOUT),
        refresh_interval=refresh_interval
        or _env_seconds("EXPENSE_DASHBOARD_REFRESH_SECONDS", DEFAULT_REFRESH_INTERVAL),
        date_order=_resolve_date_order(),
    )


def _canonical(values: Iterable[str] | None, options: Sequence[str], label: str) -> frozenset:
    """Map user spellings onto the canonical ``options`` (case-insensitive)."""

    lookup = {o.lower(): o for o in options}
    out: set[str] = set()
    for v in values or ():
        key = v.strip().lower()
        if key not in lookup:
            raise typer.BadParameter(
                f"unknown {label} {v!r}; choose from: {', '.join(options)}",
                param_hint=f"--{label}",
            )
        out.add(lookup[key])
    return frozenset(out)


def _load_records(sample: bool) -> tuple[list[ExpenseRecord], str]:
    """Return the records to display and a short label for where they came from."""

    if sample:
        return generate_sample_expenses(), "sample data"

    sync = _make_sync()
    asyncio.run(sync.resume())
    if sync.state == "failed":
        _fail(sync.error or "Failed to load sheet")
    if not sync.is_connected:
        return generate_sample_expenses(), "sample data (no sheet connected)"
    return list(sync.records), f"sheet {sync.source}"


def _build_filter(
    categories: list[str] | None,
    payments: list[str] | None,
    date_from: datetime | None,
    date_to: datetime | None,
    this_month: bool = False,
) -> ExpenseFilter:
    if this_month:
        if date_from is not None or date_to is not None:
            raise typer.BadParameter(
                "--this-month cannot be combined with --from/--to", param_hint="--this-month"
            )
        month = current_month_filter()
        first, last = month.date_from, month.date_to
    else:
        if date_from is not None and date_to is not None and date_from > date_to:
            raise typer.BadParameter("--from must not be after --to", param_hint="--from")
        first = date_from.date() if date_from is not None else None
        last = date_to.date() if date_to is not None else None
    return ExpenseFilter(
        date_from=first,
        date_to=last,
        categories=_canonical(categories, CATEGORIES, "category"),
        payment_methods=_canonical(payments, PAYMENT_METHODS, "payment"),
    )


def _expense_table(records: Sequence[ExpenseRecord]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Category")
    table.add_column("Amount", justify="right")
    table.add_column("Description")
    table.add_column("Payment")
    table.add_column("Receipt")
    table.add_column("Imp.", justify="right")
    for r in records:
        desc = r.description + (" (pending)" if r.provisional else "")
        table.add_row(
            r.expense_date.strftime("%Y-%m-%d"),
            r.category,
            format_inr(r.amount),
            escape(desc),
            r.payment_method,
            "Yes" if r.receipt_required else "No",
            str(r.importance),
        )
    return table


def _breakdown_table(title: str, rows: Sequence[BreakdownRow]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Total", justify="right")
    table.add_column("Count", justify="right")
    for row in rows:
        table.add_row(row.name, format_inr(row.total), str(row.count))
    return table


def _print_refresh(sync: SheetSync) -> None:
    stamp = datetime.now().strftime("%H:%M:%S")
    if sync.state == "failed":
        err_console.print(f"[{stamp}] [red]Error:[/red] {escape(sync.error or '')}")
        return
    updated = sync.last_updated.strftime("%H:%M:%S") if sync.last_updated else "-"
    console.print(f"[{stamp}] {len(sync.records)} expenses (updated {updated})")


# ---- Shared option declarations ----------------------------------------------


CategoryOpt = Annotated[
    list[str] | None,
    typer.Option("--category", help="Only these categories (repeatable)."),
]
PaymentOpt = Annotated[
    list[str] | None,
    typer.Option("--payment", help="Only these payment methods (repeatable)."),
]
FromOpt = Annotated[
    datetime | None,
    typer.Option("--from", formats=["%Y-%m-%d"], help="First day to include."),
]
ToOpt = Annotated[
    datetime | None,
    typer.Option("--to", formats=["%Y-%m-%d"], help="Last day to include."),
]
ThisMonthOpt = Annotated[
    bool, typer.Option("--this-month", help="Only the current calendar month.")
]
SampleOpt = Annotated[
    bool, typer.Option("--sample", help="Use generated sample data instead of the sheet.")
]


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    name="expense-dashboard",
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Personal expense dashboard fed by a public Google Sheet. "
        "Loads settings overrides from a local .env before running."
    ),
)


@app.command("connect")
def connect_cmd(
    sheet_url: Annotated[str, typer.Argument(help="Google Sheets link to read.")],
    webhook_url: Annotated[
        str | None,
        typer.Option(help="Endpoint that appends rows for add-expense (kept when omitted)."),
    ] = None,
) -> None:
    """Fetch the sheet once and remember it for later commands."""

    sync = _make_sync()
    sync.load_settings()
    try:
        records = asyncio.run(sync.connect(sheet_url, webhook_url))
    except SheetError as e:
        _fail(e.user_message)

    console.print(f"Connected to {sync.source}: {len(records)} expenses loaded.")
    if sync.webhook_url:
        console.print("Write-back webhook configured.")


@app.command("disconnect")
def disconnect_cmd() -> None:
    """Forget the saved sheet (the webhook URL is kept)."""

    sync = _make_sync()
    had_sheet = bool(SettingsStore().load().sheet_url)
    sync.disconnect()
    console.print("Disconnected." if had_sheet else "No sheet was connected.")


@app.command("show")
def show_cmd(
    limit: Annotated[int, typer.Option(min=1, help="Maximum rows to print.")] = 20,
    category: CategoryOpt = None,
    payment: PaymentOpt = None,
    date_from: FromOpt = None,
    date_to: ToOpt = None,
    this_month: ThisMonthOpt = False,
    sample: SampleOpt = False,
) -> None:
    """Print the newest expenses matching the filters."""

    flt = _build_filter(category, payment, date_from, date_to, this_month)
    records, origin = _load_records(sample)
    matched = filter_records(records, flt)

    console.print(f"Source: {origin}")
    if matched:
        console.print(_expense_table(matched[:limit]))
    console.print(f"Showing {min(limit, len(matched))} of {len(matched)} expenses")


@app.command("summary")
def summary_cmd(
    days: Annotated[int, typer.Option(min=1, help="Days in the spending trend.")] = 14,
    category: CategoryOpt = None,
    payment: PaymentOpt = None,
    date_from: FromOpt = None,
    date_to: ToOpt = None,
    this_month: ThisMonthOpt = False,
    sample: SampleOpt = False,
) -> None:
    """Print headline stats, breakdowns, and the daily spending trend."""

    flt = _build_filter(category, payment, date_from, date_to, this_month)
    records, origin = _load_records(sample)
    matched = filter_records(records, flt)
    stats = dashboard_stats(matched)

    console.print(f"Source: {origin}")
    console.print(f"Total spent: {format_inr(stats.total_spent)}")
    console.print(f"This month: {format_inr(stats.monthly_spent)}")
    console.print(f"Daily average (30d): {format_inr(stats.average_daily)}")
    console.print(f"Transactions: {stats.transaction_count}")
    console.print(f"Highest: {format_inr(stats.highest_transaction)}")
    console.print(f"Top category: {stats.most_used_category}")
    console.print(f"Top payment: {stats.most_used_payment}")

    if matched:
        console.print(_breakdown_table("By category", category_breakdown(matched)))
        console.print(_breakdown_table("By payment method", payment_breakdown(matched)))

    trend = spending_trend(matched, days=days)
    peak = max((p.amount for p in trend), default=0) or 1
    table = Table(title=f"Last {days} days", show_header=True, header_style="bold")
    table.add_column("Day")
    table.add_column("Spent", justify="right")
    table.add_column("")
    for point in trend:
        bar = "#" * int(point.amount * 20 / peak)
        table.add_row(point.label, format_compact(point.amount), bar)
    console.print(table)


@app.command("watch")
def watch_cmd(
    interval: Annotated[
        float | None,
        typer.Option(min=0.001, help="Seconds between refreshes (default from env or 60)."),
    ] = None,
    cycles: Annotated[
        int | None, typer.Option(min=1, help="Stop after this many refreshes.")
    ] = None,
) -> None:
    """Keep refreshing the saved sheet, printing one line per refresh."""

    sync = _make_sync(refresh_interval=interval)

    async def _run() -> None:
        await sync.resume()
        if not sync.is_connected:
            _fail(sync.error or "No sheet connected. Run 'connect' first.")
        _print_refresh(sync)

        done = asyncio.Event()
        seen = 0

        def _on_change(s: SheetSync) -> None:
            nonlocal seen
            if s.state not in ("ready", "failed"):
                return
            seen += 1
            _print_refresh(s)
            if cycles is not None and seen >= cycles:
                done.set()

        unsubscribe = sync.subscribe(_on_change)
        task = sync.start_auto_refresh()
        try:
            if cycles is None:
                await task
            else:
                await done.wait()
        finally:
            unsubscribe()
            sync.stop_auto_refresh()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped.")


@app.command("add-expense")
def add_expense_cmd(
    amount: Annotated[str, typer.Option(help="Amount in rupees, e.g. 450 or 99.50.")],
    category: Annotated[
        str | None, typer.Option(help="Category (prompted when omitted).")
    ] = None,
    payment: Annotated[
        str | None, typer.Option(help="Payment method (prompted when omitted).")
    ] = None,
    description: Annotated[str, typer.Option(help="Free-text note.")] = "",
    on: Annotated[
        datetime | None,
        typer.Option("--date", formats=["%Y-%m-%d"], help="Expense date (default today)."),
    ] = None,
    receipt: Annotated[bool, typer.Option(help="Mark the receipt as required.")] = False,
    importance: Annotated[int, typer.Option(help="Importance from 1 to 5.")] = DEFAULT_IMPORTANCE,
) -> None:
    """Submit a new expense through the configured webhook."""

    if category is None:
        category = choose_option(CATEGORIES, default=DEFAULT_CATEGORY, message="Category: ")
    if payment is None:
        payment = choose_option(
            PAYMENT_METHODS, default=DEFAULT_PAYMENT_METHOD, message="Payment method: "
        )
    (canon_category,) = _canonical([category], CATEGORIES, "category")
    (canon_payment,) = _canonical([payment], PAYMENT_METHODS, "payment")

    try:
        form = ExpenseForm(
            expense_date=on or datetime.now().replace(hour=0, minute=0, second=0, microsecond=0),
            category=canon_category,
            amount=amount,
            description=description,
            payment_method=canon_payment,
            receipt_required=receipt,
            importance=importance,
        )
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        _fail(f"invalid {field or 'input'}: {first.get('msg', e)}")

    sync = _make_sync()
    sync.load_settings()
    if not sync.webhook_url:
        _fail("No webhook configured. Run 'connect --webhook-url URL' first.")
    try:
        record = asyncio.run(sync.add_expense(form))
    except SheetError as e:
        _fail(e.user_message)

    console.print(f"Added {format_inr(record.amount)} for {record.category} ({record.description}).")
    console.print("Submitted to webhook; it will appear in the sheet on the next refresh.")


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    log_level: str | None = typer.Option(
        None, help="Override EXPENSE_DASHBOARD_LOG_LEVEL (e.g. DEBUG)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and reconfigures logging so the handler
    writes to this invocation's stderr.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level, force=True)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    app()
