"""Transaction builder: tokenized rows + confirmed mapping → candidates.

Each data row yields at most one :class:`ParsedTransaction`. A row is skipped
(never raised on) when its date does not parse, its vendor cell is empty, or
its amount does not parse; every skip is reported as a :class:`SkippedRow`.

Amounts come from the single ``amount`` column, or from ``inflow - outflow``
when the mapping uses the split pair. In split mode an empty flow cell counts
as zero, while a non-empty cell that does not parse skips the row.

When ``previous`` candidates are supplied (a rebuild after a mapping edit), a
row keeps its earlier category assignment as long as its CSV category string
is unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ..errors import NoDataRowsError
from ..logging_setup import get_logger
from ..models import (
    BuildResult,
    ColumnMapping,
    DateFormat,
    ParsedTransaction,
    RawRow,
    SkippedRow,
    SkipReason,
)
from ..normalizers import normalize_vendor, parse_amount, parse_date

_logger = get_logger("ledger_import.ingest.builder")

STARTING_BALANCE_PHRASE = "starting balance"


def _cell(row: RawRow, idx: int | None) -> str:
    if idx is None or idx >= len(row):
        return ""
    return row[idx].strip()


def _flow_amount(row: RawRow, mapping: ColumnMapping) -> Decimal | None:
    """Return ``inflow - outflow``, or ``None`` when either cell is malformed.

    Only an empty cell stands for zero. A non-empty cell that does not parse is
    never coerced to zero; the caller skips the row as ``unparseable_amount``
    instead of importing a wrong signed amount.
    """

    inflow_raw = _cell(row, mapping.inflow)
    outflow_raw = _cell(row, mapping.outflow)
    inflow = parse_amount(inflow_raw) if inflow_raw else Decimal(0)
    outflow = parse_amount(outflow_raw) if outflow_raw else Decimal(0)
    if inflow is None or outflow is None:
        return None
    return inflow - outflow


def build_transactions(
    rows: Sequence[RawRow],
    mapping: ColumnMapping,
    *,
    date_format: DateFormat | str = DateFormat.AUTO,
    previous: Sequence[ParsedTransaction] | None = None,
) -> BuildResult:
    """Build candidate transactions from ``rows`` using ``mapping``.

    Raises
    ------
    NoDataRowsError
        When ``rows`` is empty.
    ValueError
        When ``mapping`` lacks a date, vendor, or amount source.
    """

    if not rows:
        raise NoDataRowsError("no data rows to build transactions from")
    if not mapping.is_complete():
        raise ValueError("column mapping must assign date, vendor, and an amount source")

    earlier = {tx.source_row_index: tx for tx in previous or ()}
    transactions: list[ParsedTransaction] = []
    skipped: list[SkippedRow] = []

    for idx, row in enumerate(rows):
        date = parse_date(_cell(row, mapping.date), date_format)
        if date is None:
            skipped.append(SkippedRow(idx, SkipReason.UNPARSEABLE_DATE))
            continue

        vendor = _cell(row, mapping.vendor)
        if not vendor:
            skipped.append(SkippedRow(idx, SkipReason.MISSING_VENDOR))
            continue

        if mapping.uses_split_amount:
            amount = _flow_amount(row, mapping)
        else:
            amount = parse_amount(_cell(row, mapping.amount))
        if amount is None:
            skipped.append(SkippedRow(idx, SkipReason.UNPARSEABLE_AMOUNT))
            continue

        csv_category = _cell(row, mapping.category)
        prior = earlier.get(idx)
        assigned = (
            prior.assigned_category
            if prior is not None and prior.csv_category == csv_category
            else None
        )

        transactions.append(
            ParsedTransaction(
                source_row_index=idx,
                date=date,
                vendor=vendor,
                amount=amount,
                description=_cell(row, mapping.description),
                csv_category=csv_category,
                is_starting_balance=STARTING_BALANCE_PHRASE in normalize_vendor(vendor),
                assigned_category=assigned,
            )
        )

    if skipped:
        _logger.info("built %d candidate(s); skipped %d row(s)", len(transactions), len(skipped))
        for s in skipped:
            _logger.debug("row %d skipped: %s", s.row_index, s.reason.value)
    else:
        _logger.info("built %d candidate(s)", len(transactions))

    return BuildResult(transactions=tuple(transactions), skipped=tuple(skipped))


__all__ = ["STARTING_BALANCE_PHRASE", "build_transactions"]
