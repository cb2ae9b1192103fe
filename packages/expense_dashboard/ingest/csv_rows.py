"""Split CSV text into rows of trimmed string fields.

Parsing follows RFC 4180 quoting via the stdlib :mod:`csv` module: a comma
outside quotes ends a field, a double quote opens or closes a quoted field,
``""`` inside quotes is one literal quote, and commas inside quotes belong to
the value. Every field is whitespace-trimmed after parsing.

``split_csv_line`` handles exactly one physical line. ``iter_csv_rows`` walks
a whole document and additionally lets a quoted field span line breaks, which
is how spreadsheet exports carry multi-line cells. An unbalanced quote never
swallows the rows after it.

A quote in the middle of an unquoted field (``x"a,b"y``) is kept as a literal
character, as the :mod:`csv` module does; it does not start a quoted section.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from io import StringIO

from ..logging_setup import get_logger

_logger = get_logger("expense_dashboard.ingest.csv_rows")


class SheetCsvDialect(csv.Dialect):
    delimiter = ","
    quotechar = '"'
    doublequote = True
    # Tolerate a space between the delimiter and an opening quote.
    skipinitialspace = True
    lineterminator = "\n"
    quoting = csv.QUOTE_MINIMAL
    # Unterminated quotes at end of input keep the partial field.
    strict = False


def _trimmed(fields: list[str]) -> list[str]:
    return [f.strip() for f in fields]


def split_csv_line(line: str) -> list[str]:
    """Tokenize a single line into fields.

    The caller is responsible for line splitting; any line break characters
    left in ``line`` are treated as plain text.
    """

    flat = line.replace("\r", " ").replace("\n", " ")
    for row in csv.reader([flat], dialect=SheetCsvDialect):
        return _trimmed(row) or [""]
    return [""]


def _read_rows(chunk: str) -> Iterator[list[str]]:
    with StringIO(chunk, newline="") as f:
        for row in csv.reader(f, dialect=SheetCsvDialect):
            yield _trimmed(row)


def iter_csv_rows(text: str) -> Iterator[list[str]]:
    """Yield the trimmed fields of every record in ``text``.

    Physical lines are grouped until their double quotes balance, so a quoted
    cell may carry line breaks. A quote that never closes affects only its own
    line: that line is tokenized alone and reading resumes on the next one.

    Blank lines yield an empty list so callers can count and skip them.
    """

    with StringIO(text, newline="") as f:
        lines = f.readlines()

    start = 0
    while start < len(lines):
        end = start
        quotes = lines[start].count('"')
        while quotes % 2 and end + 1 < len(lines):
            end += 1
            quotes += lines[end].count('"')
        if quotes % 2:
            _logger.debug("csv:unterminated_quote line=%d", start + 1)
            yield split_csv_line(lines[start])
            start += 1
            continue
        yield from _read_rows("".join(lines[start : end + 1]))
        start = end + 1


__all__ = ["SheetCsvDialect", "iter_csv_rows", "split_csv_line"]
