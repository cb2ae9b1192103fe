"""Fetch orchestration: connect, refresh, auto-refresh, and write-back.

:class:`SheetSync` owns the working record collection and walks a small state
machine::

    idle --connect--> fetching --ok--> ready
                         |                |
                         +--error--> failed
    ready/failed --refresh/connect/poll--> fetching

Concurrency model
-----------------
All state lives on one asyncio event loop. The only suspension point is the
network round trip, which runs in a worker thread (``asyncio.to_thread``)
bounded by ``timeout``. Parsing happens in that same worker call; the result
is installed on the loop in one assignment, so consumers never observe a
partially replaced collection.

There is a single in-flight slot:

- ``connect()``/``refresh()`` cancel whatever is in flight and start over.
- ``poll()`` (the periodic trigger) is advisory and does nothing while a
  fetch is in flight.
- Every fetch carries a generation number; only the most recently *started*
  fetch may install its result or its error.

Write-back is two-phase: the webhook accepts the row, then a provisional
record is inserted locally. The next successful fetch replaces the whole
collection, provisional records included; nothing is merged field by field.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal, TypeAlias

from .errors import (
    FetchFailedError,
    FetchTimeoutError,
    InvalidSourceError,
    SheetError,
    WriteBackError,
)
from .ingest.sheet_url import resolve_sheet_url
from .logging_setup import get_logger
from .models import DateOrder, ExpenseForm, ExpenseRecord, SheetSource, sort_newest_first
from .settings_store import SettingsStore
from .sheet_client import DEFAULT_TIMEOUT, FetchFn, fetch_csv_text, load_source
from .webhook import build_payload, post_expense

SyncState = Literal["idle", "fetching", "ready", "failed"]

DEFAULT_REFRESH_INTERVAL = 60.0

Listener: TypeAlias = Callable[["SheetSync"], Any]
PostFn: TypeAlias = Callable[..., None]

_logger = get_logger("expense_dashboard.sync")


class SheetSync:
    """Own the expense collection loaded from one public sheet.

    Parameters
    ----------
    store:
        Where the last sheet URL and webhook URL are persisted.
    fetch:
        Blocking ``fetch(url, *, timeout) -> str``; defaults to the urllib
        client. Tests inject stubs.
    post:
        Blocking ``post(webhook_url, payload, *, timeout)`` used for
        write-back.
    timeout:
        Upper bound in seconds for one fetch or one webhook call.
    refresh_interval:
        Seconds between periodic refresh attempts.
    date_order:
        Reading order for ambiguous ``a/b/yyyy`` dates.
    clock:
        Source of "now" for ``last_updated`` and provisional timestamps.
    """

    def __init__(
        self,
        store: SettingsStore,
        *,
        fetch: FetchFn = fetch_csv_text,
        post: PostFn = post_expense,
        timeout: float = DEFAULT_TIMEOUT,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        date_order: DateOrder = "dmy",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")

        self._store = store
        self._fetch = fetch
        self._post = post
        self._timeout = timeout
        self._refresh_interval = refresh_interval
        self._date_order: DateOrder = date_order
        self._clock = clock

        self._state: SyncState = "idle"
        self._records: tuple[ExpenseRecord, ...] = ()
        self._error: str | None = None
        self._last_updated: datetime | None = None
        self._source: SheetSource | None = None
        self._sheet_url: str | None = None
        self._webhook_url: str | None = None

        self._generation = 0
        self._inflight: asyncio.Task[list[ExpenseRecord]] | None = None
        self._inflight_source: SheetSource | None = None
        self._auto_task: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        return self._records

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    @property
    def source(self) -> SheetSource | None:
        return self._source

    @property
    def sheet_url(self) -> str | None:
        return self._sheet_url

    @property
    def webhook_url(self) -> str | None:
        return self._webhook_url

    @property
    def is_connected(self) -> bool:
        return self._source is not None

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(self)`` after every change; returns an unsubscribe hook."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _set_state(self, state: SyncState) -> None:
        self._state = state
        self._notify()

    def _fail(self, err: SheetError) -> None:
        self._error = err.user_message
        self._set_state("failed")

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _load(self, source: SheetSource) -> list[ExpenseRecord]:
        return load_source(
            source, fetch=self._fetch, timeout=self._timeout, date_order=self._date_order
        )

    async def _fetch_records(self, source: SheetSource) -> list[ExpenseRecord]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._load, source), timeout=self._timeout
            )
        except TimeoutError as e:
            raise FetchTimeoutError() from e

    def _cancel_inflight(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            _logger.debug("sync:cancel_inflight source=%s", self._inflight_source)
            self._inflight.cancel()
        self._inflight = None
        self._inflight_source = None

    async def _run_fetch(self, source: SheetSource) -> bool:
        """Start a fetch in the single slot, superseding any earlier one.

        Returns ``True`` when this fetch installed its result. When a newer
        trigger supersedes it, nothing is installed and ``False`` is returned.
        """

        self._cancel_inflight()
        self._generation += 1
        generation = self._generation
        previous_state = self._state

        task = asyncio.create_task(self._fetch_records(source))
        self._inflight = task
        self._inflight_source = source
        self._error = None
        self._set_state("fetching")
        _logger.debug("sync:fetch_start source=%s generation=%d", source, generation)

        try:
            records = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            caller_cancelled = current is not None and current.cancelling() > 0
            if generation != self._generation and not caller_cancelled:
                _logger.debug("sync:superseded generation=%d", generation)
                return False
            if generation == self._generation:
                # Caller gave up; leave the slot as it was before this fetch.
                task.cancel()
                self._inflight = None
                self._inflight_source = None
                self._set_state(previous_state)
            raise
        except SheetError as e:
            if generation != self._generation:
                _logger.debug("sync:stale_error generation=%d err=%s", generation, e)
                return False
            self._inflight = None
            self._inflight_source = None
            _logger.info("sync:fetch_failed source=%s err=%s", source, e.user_message)
            self._fail(e)
            raise
        except Exception as e:
            if generation != self._generation:
                _logger.debug("sync:stale_error generation=%d err=%r", generation, e)
                return False
            self._inflight = None
            self._inflight_source = None
            wrapped = FetchFailedError(f"Failed to fetch sheet: {e}")
            _logger.warning("sync:fetch_crashed source=%s err=%r", source, e)
            self._fail(wrapped)
            raise wrapped from e

        if generation != self._generation:
            _logger.debug("sync:stale_result generation=%d", generation)
            return False

        self._inflight = None
        self._inflight_source = None
        self._records = tuple(records)
        self._last_updated = self._clock()
        self._error = None
        _logger.info("sync:fetch_ok source=%s records=%d", source, len(records))
        self._set_state("ready")
        return True

    async def connect(
        self, sheet_url: str, webhook_url: str | None = None
    ) -> tuple[ExpenseRecord, ...]:
        """Resolve ``sheet_url``, fetch it, and persist it on success.

        An invalid URL fails immediately without any network call. Errors are
        recorded on the instance (``state``/``error``) and re-raised.
        """

        try:
            source = resolve_sheet_url(sheet_url)
        except InvalidSourceError as e:
            self._cancel_inflight()
            self._generation += 1
            self._fail(e)
            raise

        if not await self._run_fetch(source):
            # Superseded by a newer trigger; that trigger owns the outcome.
            return self._records

        self._source = source
        self._sheet_url = sheet_url
        if webhook_url is not None:
            self._webhook_url = webhook_url.strip() or None
        self._store.update(sheet_url=sheet_url, webhook_url=self._webhook_url)
        self._notify()
        return self._records

    async def refresh(self) -> tuple[ExpenseRecord, ...]:
        """Re-fetch the connected sheet; a no-op while disconnected."""

        if self._source is not None:
            await self._run_fetch(self._source)
        return self._records

    async def poll(self) -> None:
        """Advisory periodic trigger.

        Skips when disconnected or when a fetch is already in flight. Failures
        are recorded on the instance, not raised, so the timer keeps running.
        """

        if self._source is None:
            return
        if self.is_fetching:
            _logger.debug("sync:poll_coalesced source=%s", self._inflight_source)
            return
        try:
            await self._run_fetch(self._source)
        except SheetError as e:
            _logger.debug("sync:poll_failed err=%s", e.user_message)

    def load_settings(self) -> SheetSource | None:
        """Adopt the persisted sheet and webhook URLs without fetching.

        Returns the saved source, or ``None`` when nothing usable is saved. A
        saved URL that no longer resolves moves the instance to ``failed``.
        """

        settings = self._store.load()
        self._webhook_url = settings.webhook_url
        if not settings.sheet_url:
            return None
        try:
            source = resolve_sheet_url(settings.sheet_url)
        except InvalidSourceError as e:
            _logger.info("sync:saved_url_invalid url=%s", settings.sheet_url)
            self._fail(e)
            return None
        self._source = source
        self._sheet_url = settings.sheet_url
        return source

    async def resume(self) -> None:
        """Reconnect to the persisted sheet, if any.

        The saved URL counts as connected even when this first fetch fails, so
        periodic refresh can retry it later. Failures are recorded, not raised.
        """

        source = self.load_settings()
        if source is None:
            return
        try:
            await self._run_fetch(source)
        except SheetError as e:
            _logger.info("sync:resume_failed err=%s", e.user_message)

    def disconnect(self) -> None:
        """Forget the sheet: stop timers, drop records, clear the saved URL."""

        self.stop_auto_refresh()
        self._cancel_inflight()
        self._generation += 1
        self._source = None
        self._sheet_url = None
        self._records = ()
        self._error = None
        self._last_updated = None
        self._store.update(sheet_url=None)
        _logger.info("sync:disconnected")
        self._set_state("idle")

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    async def _auto_refresh_loop(self) -> None:
        while self._source is not None:
            await asyncio.sleep(self._refresh_interval)
            await self.poll()

    def start_auto_refresh(self) -> asyncio.Task[None]:
        """Start (or return the running) periodic refresh task."""

        if self._auto_task is None or self._auto_task.done():
            self._auto_task = asyncio.create_task(self._auto_refresh_loop())
        return self._auto_task

    def stop_auto_refresh(self) -> None:
        if self._auto_task is not None and not self._auto_task.done():
            self._auto_task.cancel()
        self._auto_task = None

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    async def add_expense(self, form: ExpenseForm) -> ExpenseRecord:
        """Submit ``form`` and insert it locally as a provisional record.

        With a webhook configured, the local insert happens only after the
        webhook accepts the row; ``WriteBackError`` leaves the collection
        untouched. Without a webhook the record is local-only.
        """

        recorded_at = self._clock()
        if self._webhook_url:
            payload = build_payload(form, recorded_at=recorded_at)
            try:
                await asyncio.wait_for(
                    asyncio.to_thread(
                        self._post, self._webhook_url, payload, timeout=self._timeout
                    ),
                    timeout=self._timeout,
                )
            except TimeoutError as e:
                raise WriteBackError("Timed out while submitting expense to webhook") from e

        record = form.to_record(
            record_id=f"local-{int(time.time() * 1000)}", recorded_at=recorded_at
        )
        self._records = tuple(sort_newest_first([record, *self._records]))
        _logger.info(
            "sync:provisional_added id=%s webhook=%s", record.id, bool(self._webhook_url)
        )
        self._notify()
        return record


__all__ = ["DEFAULT_REFRESH_INTERVAL", "SheetSync", "SyncState"]
