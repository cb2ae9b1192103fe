"""Pytest configuration for test isolation.

The sync layer persists the last sheet URL and webhook URL under a settings
directory (``./.expense_dashboard`` by default). When tests run in the same
working tree, a file written by one test would make the next one "resume" a
sheet it never connected, so each test gets its own directory via an autouse
fixture. The CLI also loads ``.env`` from the working directory, so tests run
from their temporary directory as well.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `expense_dashboard` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
if str(_PKG_DIR) not in sys.path:
    sys.path.insert(0, str(_PKG_DIR))

_CONFIG_ENV = (
    "EXPENSE_DASHBOARD_DATE_ORDER",
    "EXPENSE_DASHBOARD_TIMEOUT",
    "EXPENSE_DASHBOARD_REFRESH_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolate_settings_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Force a per-test settings root so tests don't share on-disk state."""

    home = tmp_path / "home"
    home.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("EXPENSE_DASHBOARD_HOME", os.fspath(home))
    # Keep CLI runs quiet; only warnings reach the captured stderr.
    monkeypatch.setenv("EXPENSE_DASHBOARD_LOG_LEVEL", "WARNING")
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _rebind_log_handler() -> Iterator[None]:
    """CLI runs bind the log handler to a runner stream that closes afterwards."""

    yield
    from expense_dashboard.logging_setup import configure_logging

    configure_logging("WARNING", force=True)
