"""Public interface for the ``ledger_import`` package.

This module exposes the pipeline entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .categories import (
    apply_category_action,
    apply_vendor_rule,
    apply_vendor_rules,
    resolve_assignments,
    suggest_merge_target,
)
from .commit import commit_import
from .config import ImportSettings
from .duplicates import find_duplicates, mark_duplicates
from .errors import (
    CommitError,
    EmptyFileError,
    FileParseError,
    LedgerImportError,
    NoDataRowsError,
    StoreError,
    TransitionError,
)
from .ingest import build_transactions, detect_format, tokenize
from .models import (
    BuildResult,
    CategoryAction,
    CategoryRef,
    ColumnMapping,
    CommitResult,
    Create,
    DateFormat,
    DetectedFormat,
    DetectionResult,
    ExistingGroupRef,
    ImportSummary,
    Merge,
    NewAccountDraft,
    ParsedTransaction,
    PendingCategory,
    PendingGroup,
    ResolvedCategory,
    Skip,
    SkippedRow,
)
from .normalizers import detect_date_format, normalize_vendor, parse_amount, parse_date
from .store import LedgerStore
from .wizard import ImportWizard, Step, WizardState, transition

__all__ = [
    # Pipeline stages
    "tokenize",
    "detect_format",
    "detect_date_format",
    "parse_date",
    "parse_amount",
    "normalize_vendor",
    "build_transactions",
    "find_duplicates",
    "mark_duplicates",
    "apply_category_action",
    "apply_vendor_rule",
    "apply_vendor_rules",
    "resolve_assignments",
    "suggest_merge_target",
    "commit_import",
    # Wizard
    "ImportWizard",
    "WizardState",
    "Step",
    "transition",
    # Models
    "BuildResult",
    "CategoryAction",
    "CategoryRef",
    "ColumnMapping",
    "CommitResult",
    "Create",
    "DateFormat",
    "DetectedFormat",
    "DetectionResult",
    "ExistingGroupRef",
    "ImportSummary",
    "Merge",
    "NewAccountDraft",
    "ParsedTransaction",
    "PendingCategory",
    "PendingGroup",
    "ResolvedCategory",
    "Skip",
    "SkippedRow",
    # Config / store / errors
    "ImportSettings",
    "LedgerStore",
    "LedgerImportError",
    "FileParseError",
    "EmptyFileError",
    "NoDataRowsError",
    "TransitionError",
    "CommitError",
    "StoreError",
]
