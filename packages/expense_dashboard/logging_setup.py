"""Logging setup shared by the CLI and the library modules.

Library code only ever calls :func:`get_logger` with a dotted name under
``expense_dashboard``; until an entry point calls :func:`configure_logging`
the package logger carries a ``NullHandler`` and stays silent.

Messages use ``area:event key=value`` text with ``%``-style arguments, e.g.
``_logger.info("sync:fetch_ok source=%s records=%d", source, n)``.

Level resolution: explicit ``level`` argument, then the
``EXPENSE_DASHBOARD_LOG_LEVEL`` environment variable, then ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "expense_dashboard"
LEVEL_ENV = "EXPENSE_DASHBOARD_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_installed: logging.Handler | None = None


def _level_from_name(name: str) -> int | None:
    name = name.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the environment) into a numeric logging level.

    Unknown names fall through to the next source instead of raising.
    """

    if isinstance(level, int):
        return level
    for candidate in (level, os.getenv(LEVEL_ENV)):
        if candidate:
            parsed = _level_from_name(candidate)
            if parsed is not None:
                return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Handler:
    """Attach one handler to the package logger and return it.

    Repeated calls are no-ops that return the installed handler, unless
    ``force`` is set, in which case the previous handler is replaced (the CLI
    does this on every invocation). Without ``stream`` the handler writes to
    ``sys.stderr`` as it is at the time of this call.
    """

    global _installed
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _installed is not None:
        if not force:
            return _installed
        logger.removeHandler(_installed)

    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _installed = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _installed is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["DEFAULT_FORMAT", "LEVEL_ENV", "configure_logging", "get_logger", "resolve_level"]
