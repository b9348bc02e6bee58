"""Data models and type aliases for ``ledger_import``.

Domain values are frozen ``dataclass`` instances: the pipeline never mutates a
candidate in place, it produces a new one with :func:`dataclasses.replace`.
The one record that crosses into the ledger store,
:class:`LedgerTransactionPayload`, is a strict pydantic model so malformed
writes fail before they reach the store.

Amounts are :class:`~decimal.Decimal` throughout. Sign convention: positive is
money in, negative is money out.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Raw file shape and format detection
# ---------------------------------------------------------------------------

# One tokenized data row. Cells are trimmed strings; nothing is typed until the
# transaction builder consumes the row.
type RawRow = tuple[str, ...]


class DetectedFormat(StrEnum):
    """Exporter profile guessed from the header row."""

    YNAB = "ynab"  # dual inflow/outflow columns
    STARLING = "starling"  # single signed amount, "counter party" vendor
    CUSTOM = "custom"


class DateFormat(StrEnum):
    AUTO = "auto"
    ISO = "YYYY-MM-DD"
    DAY_FIRST = "DD/MM/YYYY"
    MONTH_FIRST = "MM/DD/YYYY"
    DAY_FIRST_DASHED = "DD-MM-YYYY"


_MAPPING_ROLES = ("date", "vendor", "amount", "inflow", "outflow", "description", "category")


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Role → column index. ``None`` means the role is unmapped.

    A mapping uses either a single signed ``amount`` column or the
    ``inflow``/``outflow`` pair, never both. :meth:`with_updates` keeps that
    invariant by clearing the other side when one side is set.
    """

    date: int | None = None
    vendor: int | None = None
    amount: int | None = None
    inflow: int | None = None
    outflow: int | None = None
    description: int | None = None
    category: int | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"ColumnMapping.{f.name} must be a non-negative column index")
        if self.amount is not None and (self.inflow is not None or self.outflow is not None):
            raise ValueError("ColumnMapping cannot map both amount and inflow/outflow")

    @property
    def uses_split_amount(self) -> bool:
        return self.inflow is not None and self.outflow is not None

    def is_complete(self) -> bool:
        """Date and vendor are mapped, plus an amount or both flow columns."""

        if self.date is None or self.vendor is None:
            return False
        return self.amount is not None or self.uses_split_amount

    def with_updates(self, **changes: int | None) -> ColumnMapping:
        unknown = sorted(set(changes) - set(_MAPPING_ROLES))
        if unknown:
            raise ValueError(f"Unknown mapping role(s): {', '.join(unknown)}")
        merged = {f.name: getattr(self, f.name) for f in fields(self)}
        merged.update(changes)
        if changes.get("amount") is not None:
            merged["inflow"] = merged["outflow"] = None
        elif changes.get("inflow") is not None or changes.get("outflow") is not None:
            merged["amount"] = None
        return ColumnMapping(**merged)


@dataclass(frozen=True, slots=True)
class DetectionResult:
    format: DetectedFormat
    mapping: ColumnMapping
    confidence: float
    # Name of the detector branch that produced this result (for logs/UI).
    detector: str


# ---------------------------------------------------------------------------
# Category and group references
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResolvedCategory:
    """A category that already exists in the ledger."""

    id: str


@dataclass(frozen=True, slots=True)
class PendingCategory:
    """A category to be created at commit time for ``csv_category``."""

    csv_category: str


type CategoryRef = ResolvedCategory | PendingCategory


@dataclass(frozen=True, slots=True)
class ExistingGroupRef:
    id: str


@dataclass(frozen=True, slots=True)
class PendingGroup:
    """A group to be created at commit time (deduplicated by name)."""

    name: str


type GroupRef = ExistingGroupRef | PendingGroup


@dataclass(frozen=True, slots=True)
class Merge:
    """Assign every transaction carrying the CSV category to an existing one."""

    target_category_id: str
    target_category_name: str = ""


@dataclass(frozen=True, slots=True)
class Create:
    """Create a new category ``name`` in ``group`` and assign it."""

    name: str
    group: GroupRef


@dataclass(frozen=True, slots=True)
class Skip:
    """Leave transactions with the CSV category uncategorized."""


type CategoryAction = Merge | Create | Skip


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """A candidate transaction built from one data row.

    ``source_row_index`` is the 0-based position among the file's data rows
    (header excluded) and identifies the candidate for per-row edits.
    """

    source_row_index: int
    date: str  # YYYY-MM-DD
    vendor: str
    amount: Decimal
    description: str = ""
    csv_category: str = ""
    is_starting_balance: bool = False
    assigned_category: CategoryRef | None = None
    is_duplicate: bool = False
    include_anyway: bool = False

    @property
    def is_excluded(self) -> bool:
        """Flagged as a duplicate and not forced back in by the user."""

        return self.is_duplicate and not self.include_anyway

    def assign(self, ref: CategoryRef | None) -> ParsedTransaction:
        return self if ref == self.assigned_category else replace(self, assigned_category=ref)


class SkipReason(StrEnum):
    UNPARSEABLE_DATE = "unparseable_date"
    MISSING_VENDOR = "missing_vendor"
    UNPARSEABLE_AMOUNT = "unparseable_amount"


@dataclass(frozen=True, slots=True)
class SkippedRow:
    row_index: int
    reason: SkipReason


@dataclass(frozen=True, slots=True)
class BuildResult:
    transactions: tuple[ParsedTransaction, ...]
    skipped: tuple[SkippedRow, ...] = ()


# ---------------------------------------------------------------------------
# Ledger read models (collaborator data)
# ---------------------------------------------------------------------------

ACCOUNT_TYPES: tuple[str, ...] = ("checking", "savings", "credit", "investment", "cash", "other")


@dataclass(frozen=True, slots=True)
class ExistingAccount:
    id: str
    name: str
    type: str
    is_active: bool = True
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class ExistingGroup:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ExistingCategory:
    id: str
    name: str
    group_id: str
    group_name: str = "Ungrouped"


@dataclass(frozen=True, slots=True)
class ExistingVendor:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ExistingTransaction:
    date: str
    vendor: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class NewAccountDraft:
    """An account the commit should create before inserting transactions."""

    name: str
    type: str = "checking"

    def __post_init__(self) -> None:
        if self.type not in ACCOUNT_TYPES:
            raise ValueError(
                f"Unsupported account type: {self.type!r}. Allowed: {list(ACCOUNT_TYPES)}"
            )

    @property
    def is_ready(self) -> bool:
        return bool(self.name.strip())


# ---------------------------------------------------------------------------
# Write contract
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    STARTING = "starting"
    INCOME = "income"
    PAYMENT = "payment"


_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class LedgerTransactionPayload(BaseModel):
    """One transaction as written to the ledger store."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    amount: Decimal
    date: str
    vendor: str
    description: str | None = None
    type: TransactionType
    account_id: str
    user_id: str
    category_id: str | None = None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        if not _ISO_DATE_RE.match(v):
            raise ValueError("date must be YYYY-MM-DD")
        return v

    @field_validator("vendor")
    @classmethod
    def _vendor_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("vendor must be non-empty")
        return v

    def to_record(self) -> dict[str, Any]:
        """Return the store record; ``category_id`` is omitted when unset."""

        record = self.model_dump()
        record["type"] = self.type.value
        if record["category_id"] is None:
            del record["category_id"]
        return record


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of one commit attempt.

    ``inserted`` is the number of transactions durably written, which on a
    failed insert stage is the contiguous prefix that made it before the
    failing ``failed_batch``.
    """

    inserted: int = 0
    skipped_duplicates: int = 0
    total: int = 0
    account_id: str | None = None
    created_group_ids: tuple[str, ...] = ()
    created_category_ids: dict[str, str] = field(default_factory=dict)
    vendors_registered: int = 0
    error: str | None = None
    failed_stage: str | None = None
    failed_batch: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class ImportSummary:
    total: int
    duplicates: int
    starting: int
    importing: int
    categorized: int
    uncategorized: int


@dataclass(frozen=True, slots=True)
class VendorCount:
    normalized: str
    original: str
    count: int


def summarize(transactions: Sequence[ParsedTransaction]) -> ImportSummary:
    """Review-stage counts over the current candidate list."""

    total = len(transactions)
    duplicates = sum(1 for tx in transactions if tx.is_excluded)
    starting = sum(1 for tx in transactions if tx.is_starting_balance)
    importing = total - duplicates
    categorized = sum(
        1 for tx in transactions if tx.assigned_category is not None and not tx.is_excluded
    )
    uncategorized = max(0, importing - starting - categorized)
    return ImportSummary(
        total=total,
        duplicates=duplicates,
        starting=starting,
        importing=importing,
        categorized=categorized,
        uncategorized=uncategorized,
    )


__all__ = [
    "RawRow",
    "DetectedFormat",
    "DateFormat",
    "ColumnMapping",
    "DetectionResult",
    "ResolvedCategory",
    "PendingCategory",
    "CategoryRef",
    "ExistingGroupRef",
    "PendingGroup",
    "GroupRef",
    "Merge",
    "Create",
    "Skip",
    "CategoryAction",
    "ParsedTransaction",
    "SkipReason",
    "SkippedRow",
    "BuildResult",
    "ACCOUNT_TYPES",
    "ExistingAccount",
    "ExistingGroup",
    "ExistingCategory",
    "ExistingTransaction",
    "ExistingVendor",
    "NewAccountDraft",
    "TransactionType",
    "LedgerTransactionPayload",
    "CommitResult",
    "ImportSummary",
    "VendorCount",
    "summarize",
]
