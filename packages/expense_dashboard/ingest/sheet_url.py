"""Resolve a user-supplied Google Sheets link into a :class:`SheetSource`.

Accepted shapes (all resolve to the same ``sheet_id``)::

    https://docs.google.com/spreadsheets/d/<id>/edit
    https://docs.google.com/spreadsheets/d/<id>/edit#gid=123
    https://docs.google.com/spreadsheets/d/<id>/edit?usp=sharing&gid=123

No network access happens here.
"""

from __future__ import annotations

import re

from ..errors import InvalidSourceError
from ..models import SheetSource

_SHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_GID_RE = re.compile(r"gid=(\d+)")

DEFAULT_GID = "0"


def parse_sheet_url(url: object) -> SheetSource | None:
    """Return the source descriptor for ``url`` or ``None`` when it does not match."""

    if not isinstance(url, str):
        return None
    match = _SHEET_ID_RE.search(url)
    if match is None:
        return None
    gid_match = _GID_RE.search(url)
    gid = gid_match.group(1) if gid_match else DEFAULT_GID
    return SheetSource(sheet_id=match.group(1), gid=gid)


def build_csv_url(sheet_id: str, gid: str = DEFAULT_GID) -> str:
    return SheetSource(sheet_id=sheet_id, gid=gid).csv_url


def resolve_sheet_url(url: object) -> SheetSource:
    """Like :func:`parse_sheet_url` but raises ``InvalidSourceError`` on mismatch."""

    source = parse_sheet_url(url)
    if source is None:
        raise InvalidSourceError()
    return source


__all__ = ["DEFAULT_GID", "build_csv_url", "parse_sheet_url", "resolve_sheet_url"]
