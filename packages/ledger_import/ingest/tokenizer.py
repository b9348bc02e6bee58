"""Tokenizer: raw uploaded bytes → header cells and data rows.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module: a quote opens
a quoted field only at the start of a cell, a doubled quote inside a quoted
field is a literal quote, and quoted cells may contain commas and newlines.
``\\r\\n``, ``\\n`` and a bare ``\\r`` all terminate a row, and a final row
without a trailing newline is still emitted.

A single cell may hold up to ``MAX_FIELD_SIZE`` characters (the stdlib default is
128 KiB); anything the reader still rejects becomes a :class:`FileParseError`.

Every cell is trimmed of surrounding whitespace. Rows whose cells are all
empty after trimming are dropped; leading blank lines before the header are
skipped the same way.
"""

from __future__ import annotations

import csv
import io
from typing import NamedTuple

from ..errors import EmptyFileError, FileParseError, NoDataRowsError
from ..logging_setup import get_logger
from ..models import RawRow

_logger = get_logger("ledger_import.ingest.tokenizer")

# Long memo or description cells from some exporters exceed the csv default.
MAX_FIELD_SIZE = 16 * 1024 * 1024


class TokenizedFile(NamedTuple):
    headers: tuple[str, ...]
    rows: list[RawRow]


def _decode(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    # ``utf-8-sig`` drops the BOM many spreadsheet exports prepend. Undecodable
    # bytes become U+FFFD rather than failing the whole upload.
    return data.decode("utf-8-sig", errors="replace")


def _is_blank(row: RawRow) -> bool:
    return all(cell == "" for cell in row)


def tokenize(data: bytes | str) -> TokenizedFile:
    """Split a delimited file into trimmed header cells and data rows.

    Raises
    ------
    EmptyFileError
        When the file holds no non-blank line at all.
    NoDataRowsError
        When only a header row is present.
    FileParseError
        When the reader rejects the text, e.g. a cell over ``MAX_FIELD_SIZE``.
    """

    text = _decode(data)
    if csv.field_size_limit() < MAX_FIELD_SIZE:
        csv.field_size_limit(MAX_FIELD_SIZE)
    with io.StringIO(text, newline="") as f:
        reader = csv.reader(f)
        try:
            parsed: list[RawRow] = [tuple(cell.strip() for cell in row) for row in reader]
        except csv.Error as exc:
            raise FileParseError(f"Failed to parse CSV: line {reader.line_num}: {exc}") from exc

    non_blank = [row for row in parsed if row and not _is_blank(row)]
    if not non_blank:
        raise EmptyFileError()

    headers, rows = non_blank[0], non_blank[1:]
    if not rows:
        raise NoDataRowsError()

    _logger.debug(
        "tokenized %d data row(s) with %d header cell(s); dropped %d blank line(s)",
        len(rows),
        len(headers),
        len(parsed) - len(non_blank),
    )
    return TokenizedFile(headers=headers, rows=rows)


__all__ = ["MAX_FIELD_SIZE", "TokenizedFile", "tokenize"]
