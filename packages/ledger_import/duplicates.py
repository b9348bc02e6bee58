"""Duplicate lookup against the target account's existing ledger entries.

Public surface:
- ``find_duplicates``: return the source row indices of candidates that match
  an existing entry on exact date, normalized vendor, and amount within the
  tolerance window.
- ``mark_duplicates``: return a copy of the candidates with ``is_duplicate``
  set from such an index set.

Existing entries are bucketed by date string, so each candidate is compared
only against entries from the same day. Starting-balance rows are never
flagged. The tolerance absorbs float/rounding drift between the ledger and the
file; it does not make nearly-equal amounts "the same".
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal

from .config import DEFAULT_DUPLICATE_TOLERANCE
from .logging_setup import get_logger
from .models import ExistingTransaction, ParsedTransaction
from .normalizers import normalize_vendor

_logger = get_logger("ledger_import.duplicates")


def _as_decimal(value: Decimal | float | int | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def find_duplicates(
    candidates: Sequence[ParsedTransaction],
    existing: Iterable[ExistingTransaction],
    *,
    tolerance: Decimal = DEFAULT_DUPLICATE_TOLERANCE,
) -> set[int]:
    """Return ``source_row_index`` values of candidates already in the ledger."""

    by_date: dict[str, list[tuple[str, Decimal]]] = defaultdict(list)
    for entry in existing:
        by_date[str(entry.date)].append(
            (normalize_vendor(entry.vendor), _as_decimal(entry.amount))
        )

    duplicates: set[int] = set()
    if not by_date:
        return duplicates

    for tx in candidates:
        if tx.is_starting_balance:
            continue
        bucket = by_date.get(tx.date)
        if not bucket:
            continue
        vendor = normalize_vendor(tx.vendor)
        if any(v == vendor and abs(amount - tx.amount) < tolerance for v, amount in bucket):
            duplicates.add(tx.source_row_index)

    _logger.info("flagged %d of %d candidate(s) as duplicates", len(duplicates), len(candidates))
    return duplicates


def mark_duplicates(
    candidates: Sequence[ParsedTransaction], duplicate_indices: set[int]
) -> tuple[ParsedTransaction, ...]:
    """Set ``is_duplicate`` on every candidate from ``duplicate_indices``.

    ``include_anyway`` overrides are kept so a re-check does not undo a
    user's decision to force a row in.
    """

    out: list[ParsedTransaction] = []
    for tx in candidates:
        flagged = tx.source_row_index in duplicate_indices
        out.append(tx if tx.is_duplicate == flagged else replace(tx, is_duplicate=flagged))
    return tuple(out)


__all__ = ["find_duplicates", "mark_duplicates"]
