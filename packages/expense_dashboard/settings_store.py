"""Persisted connection settings (last sheet URL and webhook URL).

The store is an explicit object handed to :class:`expense_dashboard.sync.SheetSync`
rather than ambient process state. ``load()`` never fails: a missing,
unreadable, or malformed file loads as empty settings. ``save()`` writes
atomically (``.tmp`` then ``os.replace``).

Location (first match wins):

- the ``path`` passed to :class:`SettingsStore`
- ``$EXPENSE_DASHBOARD_HOME/settings.json``
- ``./.expense_dashboard/settings.json``
"""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from .logging_setup import get_logger

# Bump only when the on-disk JSON shape changes.
SCHEMA_VERSION: int = 1

_HOME_ENV = "EXPENSE_DASHBOARD_HOME"
_FILE_NAME = "settings.json"

_logger = get_logger("expense_dashboard.settings_store")


class StoredSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    schema_version: int = SCHEMA_VERSION
    sheet_url: str | None = None
    webhook_url: str | None = None


def default_settings_path() -> Path:
    root = os.getenv(_HOME_ENV)
    if root and root.strip():
        return Path(root).expanduser().resolve() / _FILE_NAME
    return (Path.cwd() / ".expense_dashboard" / _FILE_NAME).resolve()


class SettingsStore:
    """Load and save :class:`StoredSettings` as JSON on disk."""

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._path = Path(path) if path is not None else default_settings_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredSettings:
        if not self._path.exists():
            return StoredSettings()
        try:
            parsed = StoredSettings.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError):
            _logger.debug(
                "settings:read_failed; using defaults path=%s", os.fspath(self._path), exc_info=True
            )
            return StoredSettings()
        if parsed.schema_version != SCHEMA_VERSION:
            return StoredSettings()
        return parsed

    def save(self, settings: StoredSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(
                json.dumps(settings.model_dump(mode="json"), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self._path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise

    def update(self, **changes: str | None) -> StoredSettings:
        """Apply ``changes`` on top of the stored values and save the result."""

        merged = self.load().model_copy(update=changes)
        self.save(merged)
        return merged


__all__ = ["SCHEMA_VERSION", "SettingsStore", "StoredSettings", "default_settings_path"]
