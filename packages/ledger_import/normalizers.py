"""Field normalizers: free-form date, amount, and vendor strings.

Bank exports disagree on almost everything, so each parser is deliberately
forgiving about surrounding noise (currency symbols, whitespace, month-name
casing) and strict about the result: a value either normalizes to a canonical
form or the parser returns ``None``. Nothing here raises for bad input.

- Dates normalize to ``YYYY-MM-DD`` strings. Calendar bounds are month 1-12,
  day 1-31 (and valid for the month), year 1900-2100.
- Amounts normalize to :class:`~decimal.Decimal`; ``(123.45)`` is negative and
  ``1.234,56`` is read as a European decimal comma.
- Vendors normalize to a lower-cased, punctuation-light key used only for
  matching; callers keep the original spelling for display and storage.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from decimal import Decimal, InvalidOperation

from .models import DateFormat

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC_TRIPLE_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_DASHED_TRIPLE_RE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_DAY_MONTH_NAME_RE = re.compile(r"^(\d{1,2})[\s-]([A-Za-z]{3,9})[\s-](\d{4})$")
_MONTH_NAME_DAY_RE = re.compile(r"^([A-Za-z]{3,9})\s+(\d{1,2}),?\s+(\d{4})$")

_MONTHS: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}  # fmt: skip

_MIN_YEAR = 1900
_MAX_YEAR = 2100


def _format_ymd(year: int, month: int, day: int) -> str | None:
    if not (_MIN_YEAR <= year <= _MAX_YEAR and 1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        # In range component-wise but not a real day (e.g. 30 February).
        return None


def _month_number(name: str) -> int | None:
    return _MONTHS.get(name.lower())


def _auto_parse_date(s: str) -> str | None:
    m = _ISO_RE.match(s)
    if m:
        return _format_ymd(int(m[1]), int(m[2]), int(m[3]))

    m = _NUMERIC_TRIPLE_RE.match(s)
    if m:
        a, b, year = int(m[1]), int(m[2]), int(m[3])
        if a > 12:
            return _format_ymd(year, b, a)
        if b > 12:
            return _format_ymd(year, a, b)
        # Ambiguous: day-first, the common layout for bank exports.
        return _format_ymd(year, b, a)

    m = _DAY_MONTH_NAME_RE.match(s)
    if m:
        month = _month_number(m[2])
        if month is not None:
            return _format_ymd(int(m[3]), month, int(m[1]))

    m = _MONTH_NAME_DAY_RE.match(s)
    if m:
        month = _month_number(m[1])
        if month is not None:
            return _format_ymd(int(m[3]), month, int(m[2]))

    return None


def parse_date(value: str | None, fmt: DateFormat | str = DateFormat.AUTO) -> str | None:
    """Return ``value`` as ``YYYY-MM-DD`` or ``None`` when it cannot be read.

    With an explicit ``fmt`` the matching pattern is tried first; a value that
    does not match that pattern at all falls back to auto detection, while a
    value that matches but has out-of-range components is rejected.
    """

    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    fmt = DateFormat(fmt)
    if fmt is DateFormat.ISO:
        m = _ISO_RE.match(s)
        if m:
            return _format_ymd(int(m[1]), int(m[2]), int(m[3]))
    elif fmt is DateFormat.DAY_FIRST:
        m = _NUMERIC_TRIPLE_RE.match(s)
        if m:
            return _format_ymd(int(m[3]), int(m[2]), int(m[1]))
    elif fmt is DateFormat.MONTH_FIRST:
        m = _NUMERIC_TRIPLE_RE.match(s)
        if m:
            return _format_ymd(int(m[3]), int(m[1]), int(m[2]))
    elif fmt is DateFormat.DAY_FIRST_DASHED:
        m = _DASHED_TRIPLE_RE.match(s)
        if m:
            return _format_ymd(int(m[3]), int(m[2]), int(m[1]))

    return _auto_parse_date(s)


def detect_date_format(samples: Iterable[str], *, limit: int = 20) -> DateFormat:
    """Pick one date format for a whole column from its first ``limit`` values.

    Returns :attr:`DateFormat.AUTO` when the samples are mixed or use month
    names, in which case each value is parsed on its own.
    """

    picked: list[str] = []
    for raw in samples:
        if len(picked) >= limit:
            break
        s = (raw or "").strip()
        if s:
            picked.append(s)
    if not picked:
        return DateFormat.AUTO

    if all(_ISO_RE.match(s) for s in picked):
        return DateFormat.ISO

    triples = [_NUMERIC_TRIPLE_RE.match(s) for s in picked]
    if all(triples):
        if any(int(m[1]) > 12 for m in triples if m):
            return DateFormat.DAY_FIRST
        if any(int(m[2]) > 12 for m in triples if m):
            return DateFormat.MONTH_FIRST
        return DateFormat.DAY_FIRST

    return DateFormat.AUTO


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_AND_SPACE_RE = re.compile(r"[£$€¥₹\s]")
# Leading numeric prefix; trailing junk such as a currency code is ignored.
_NUMBER_PREFIX_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_amount(value: str | None) -> Decimal | None:
    """Parse a monetary string into a signed :class:`~decimal.Decimal`.

    Handles ``£1,234.56``, ``-$50.00``, ``(100.00)``, ``1234.56`` and the
    European ``1.234,56``. A comma is the decimal separator only when it is
    the last separator and sits exactly three characters from the end.
    """

    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    parenthesized = len(s) >= 2 and s.startswith("(") and s.endswith(")")
    if parenthesized:
        s = s[1:-1]

    s = _CURRENCY_AND_SPACE_RE.sub("", s)

    last_comma = s.rfind(",")
    last_dot = s.rfind(".")
    if last_comma > last_dot and last_comma == len(s) - 3:
        s = s.replace(".", "").replace(",", ".")
    else:
        s = s.replace(",", "")

    m = _NUMBER_PREFIX_RE.match(s)
    if not m:
        return None
    try:
        amount = Decimal(m.group(0))
    except InvalidOperation:
        return None
    return -amount if parenthesized else amount


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------

_APOSTROPHES_RE = re.compile(r"[‘’ʼ`´]")
_PUNCTUATION_RE = re.compile(r"[^\w\s'-]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_vendor(vendor: str | None) -> str:
    """Return the matching key for ``vendor`` (never used for display)."""

    s = (vendor or "").lower()
    s = _APOSTROPHES_RE.sub("'", s)
    s = _PUNCTUATION_RE.sub("", s)
    return _WHITESPACE_RE.sub(" ", s).strip()


__all__ = [
    "parse_date",
    "detect_date_format",
    "parse_amount",
    "normalize_vendor",
]
