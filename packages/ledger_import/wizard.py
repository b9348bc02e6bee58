"""Import wizard: an explicit state machine over the five import steps.

``upload → mapping → account → categories → review``

:func:`transition` is pure: it takes a :class:`WizardState` and an event and
returns the next state, or raises :class:`~ledger_import.errors.TransitionError`
when the event is not allowed. Step navigation moves one step at a time;
moving forward requires the current step's readiness predicate
(:func:`can_advance`). While a commit is in flight every event other than
commit progress/outcome is rejected.

:class:`ImportWizard` owns one state and performs the I/O around it: reading
the file, building candidates when leaving ``mapping``, checking duplicates
when entering ``review``, and running the commit.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from .categories import (
    apply_category_action,
    apply_vendor_rule,
    apply_vendor_rules,
    resolve_assignments,
    validate_action,
)
from .commit import CompleteCallback, commit_import
from .config import ImportSettings
from .duplicates import find_duplicates, mark_duplicates
from .errors import TransitionError
from .ingest import build_transactions, detect_format, tokenize
from .logging_setup import get_logger
from .models import (
    BuildResult,
    CategoryAction,
    CategoryRef,
    ColumnMapping,
    CommitResult,
    DateFormat,
    DetectedFormat,
    DetectionResult,
    ExistingAccount,
    ImportSummary,
    NewAccountDraft,
    ParsedTransaction,
    RawRow,
    ResolvedCategory,
    SkippedRow,
    summarize,
)
from .normalizers import detect_date_format, normalize_vendor
from .store import LedgerStore, active_accounts

_logger = get_logger("ledger_import.wizard")


class Step(StrEnum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    ACCOUNT = "account"
    CATEGORIES = "categories"
    REVIEW = "review"


STEPS: tuple[Step, ...] = tuple(Step)

DEFAULT_MAPPING = ColumnMapping(date=0, vendor=1, amount=2)


@dataclass(frozen=True, slots=True)
class WizardState:
    step: Step = Step.UPLOAD
    headers: tuple[str, ...] = ()
    rows: tuple[RawRow, ...] = ()
    detected_format: DetectedFormat = DetectedFormat.CUSTOM
    confidence: float = 0.0
    mapping: ColumnMapping = DEFAULT_MAPPING
    date_format: DateFormat = DateFormat.AUTO
    target_account_id: str | None = None
    new_account: NewAccountDraft | None = None
    transactions: tuple[ParsedTransaction, ...] = ()
    skipped_rows: tuple[SkippedRow, ...] = ()
    # Keyed by raw CSV category / normalized vendor. Never mutated in place.
    category_actions: Mapping[str, CategoryAction] = field(default_factory=dict)
    vendor_rules: Mapping[str, str] = field(default_factory=dict)
    is_committing: bool = False
    commit_progress: int = 0
    commit_total: int = 0
    commit_error: str | None = None
    commit_done: bool = False


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileLoaded:
    headers: tuple[str, ...]
    rows: tuple[RawRow, ...]
    detection: DetectionResult
    date_format: DateFormat = DateFormat.AUTO


@dataclass(frozen=True, slots=True)
class SetFormat:
    format: DetectedFormat
    mapping: ColumnMapping | None = None


@dataclass(frozen=True, slots=True)
class SetDateFormat:
    date_format: DateFormat


@dataclass(frozen=True, slots=True)
class UpdateMapping:
    changes: Mapping[str, int | None]


@dataclass(frozen=True, slots=True)
class SelectAccount:
    account_id: str


@dataclass(frozen=True, slots=True)
class DraftNewAccount:
    draft: NewAccountDraft


@dataclass(frozen=True, slots=True)
class SetTransactions:
    result: BuildResult


@dataclass(frozen=True, slots=True)
class SetCategoryAction:
    csv_category: str
    action: CategoryAction


@dataclass(frozen=True, slots=True)
class SetVendorRule:
    vendor: str
    category_id: str | None


@dataclass(frozen=True, slots=True)
class ApplyVendorRules:
    pass


@dataclass(frozen=True, slots=True)
class SetTransactionCategory:
    row_index: int
    category: CategoryRef | None


@dataclass(frozen=True, slots=True)
class ToggleIncludeDuplicate:
    row_index: int


@dataclass(frozen=True, slots=True)
class MarkDuplicates:
    indices: frozenset[int]


@dataclass(frozen=True, slots=True)
class GoToStep:
    step: Step


@dataclass(frozen=True, slots=True)
class CommitStarted:
    pass


@dataclass(frozen=True, slots=True)
class CommitProgressed:
    done: int
    total: int


@dataclass(frozen=True, slots=True)
class CommitFailed:
    error: str
    # Set when the commit created the drafted account before failing.
    account_id: str | None = None


@dataclass(frozen=True, slots=True)
class CommitFinished:
    pass


@dataclass(frozen=True, slots=True)
class Reset:
    pass


type WizardEvent = (
    FileLoaded
    | SetFormat
    | SetDateFormat
    | UpdateMapping
    | SelectAccount
    | DraftNewAccount
    | SetTransactions
    | SetCategoryAction
    | SetVendorRule
    | ApplyVendorRules
    | SetTransactionCategory
    | ToggleIncludeDuplicate
    | MarkDuplicates
    | GoToStep
    | CommitStarted
    | CommitProgressed
    | CommitFailed
    | CommitFinished
    | Reset
)

_COMMIT_EVENTS = (CommitProgressed, CommitFailed, CommitFinished)


# ---------------------------------------------------------------------------
# Readiness predicates
# ---------------------------------------------------------------------------


def has_account(state: WizardState) -> bool:
    if state.target_account_id:
        return True
    return state.new_account is not None and state.new_account.is_ready


def can_advance(state: WizardState) -> bool:
    """Whether ``state.step`` allows moving one step forward."""

    match state.step:
        case Step.UPLOAD:
            return len(state.rows) > 0
        case Step.MAPPING:
            return state.mapping.is_complete()
        case Step.ACCOUNT:
            return has_account(state)
        case Step.CATEGORIES:
            return True
        case _:
            return False


def can_commit(state: WizardState) -> bool:
    return (
        state.step is Step.REVIEW
        and not state.is_committing
        and not state.commit_done
        and has_account(state)
    )


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def _require_step(state: WizardState, event: Any, *allowed: Step) -> None:
    if state.step not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise TransitionError(
            f"{type(event).__name__} is only allowed in step(s) {names}; current step is "
            f"{state.step.value}"
        )


def _require_row(state: WizardState, row_index: int) -> None:
    if not any(tx.source_row_index == row_index for tx in state.transactions):
        raise TransitionError(f"No transaction for row index {row_index}")


def _update_row(
    state: WizardState, row_index: int, fn: Callable[[ParsedTransaction], ParsedTransaction]
) -> tuple[ParsedTransaction, ...]:
    _require_row(state, row_index)
    return tuple(fn(tx) if tx.source_row_index == row_index else tx for tx in state.transactions)


def _set_vendor_rule(state: WizardState, event: SetVendorRule) -> WizardState:
    key = normalize_vendor(event.vendor)
    if not key:
        raise TransitionError("Vendor rule needs a non-empty vendor")
    rules = dict(state.vendor_rules)
    previous = rules.pop(key, None)
    if event.category_id:
        rules[key] = event.category_id

    transactions = state.transactions
    if previous is not None:
        # Withdraw what the old rule assigned, unless a CSV action set it.
        stale = ResolvedCategory(previous)
        transactions = tuple(
            tx.assign(None)
            if tx.assigned_category == stale
            and normalize_vendor(tx.vendor) == key
            and tx.csv_category not in state.category_actions
            else tx
            for tx in transactions
        )
    if event.category_id:
        transactions = apply_vendor_rule(transactions, event.vendor, event.category_id)
    return replace(state, vendor_rules=rules, transactions=transactions)


def _go_to_step(state: WizardState, target: Step) -> WizardState:
    current = STEPS.index(state.step)
    wanted = STEPS.index(target)
    if wanted == current + 1:
        if not can_advance(state):
            raise TransitionError(f"Step {state.step.value} is not ready to advance")
    elif wanted != current - 1:
        raise TransitionError(
            f"Cannot move from {state.step.value} to {target.value}; steps change one at a time"
        )
    return replace(state, step=target)


def transition(state: WizardState, event: WizardEvent) -> WizardState:
    """Return the state after ``event``; raise :class:`TransitionError` if rejected."""

    if state.is_committing and not isinstance(event, _COMMIT_EVENTS):
        raise TransitionError(f"{type(event).__name__} rejected: a commit is in progress")

    match event:
        case FileLoaded(headers=headers, rows=rows, detection=detection, date_format=date_format):
            if not rows:
                raise TransitionError("A loaded file needs at least one data row")
            return WizardState(
                headers=tuple(headers),
                rows=tuple(rows),
                detected_format=detection.format,
                confidence=detection.confidence,
                mapping=detection.mapping,
                date_format=date_format,
            )

        case SetFormat(format=fmt, mapping=mapping):
            _require_step(state, event, Step.UPLOAD, Step.MAPPING)
            return replace(state, detected_format=fmt, mapping=mapping or state.mapping)

        case SetDateFormat(date_format=date_format):
            _require_step(state, event, Step.UPLOAD, Step.MAPPING)
            return replace(state, date_format=DateFormat(date_format))

        case UpdateMapping(changes=changes):
            _require_step(state, event, Step.UPLOAD, Step.MAPPING)
            try:
                mapping = state.mapping.with_updates(**changes)
            except ValueError as exc:
                raise TransitionError(str(exc)) from exc
            return replace(state, mapping=mapping)

        case SelectAccount(account_id=account_id):
            _require_step(state, event, Step.ACCOUNT)
            return replace(state, target_account_id=account_id, new_account=None)

        case DraftNewAccount(draft=draft):
            _require_step(state, event, Step.ACCOUNT)
            return replace(state, new_account=draft, target_account_id=None)

        case SetTransactions(result=result):
            _require_step(state, event, Step.MAPPING)
            transactions = resolve_assignments(
                result.transactions, state.category_actions, state.vendor_rules
            )
            return replace(state, transactions=transactions, skipped_rows=result.skipped)

        case SetCategoryAction(csv_category=csv_category, action=action):
            _require_step(state, event, Step.CATEGORIES, Step.REVIEW)
            try:
                action = validate_action(action)
            except ValueError as exc:
                raise TransitionError(str(exc)) from exc
            actions = {**state.category_actions, csv_category: action}
            transactions = apply_category_action(state.transactions, csv_category, action)
            return replace(
                state,
                category_actions=actions,
                transactions=apply_vendor_rules(transactions, state.vendor_rules),
            )

        case SetVendorRule():
            _require_step(state, event, Step.CATEGORIES, Step.REVIEW)
            return _set_vendor_rule(state, event)

        case ApplyVendorRules():
            _require_step(state, event, Step.CATEGORIES, Step.REVIEW)
            return replace(
                state, transactions=apply_vendor_rules(state.transactions, state.vendor_rules)
            )

        case SetTransactionCategory(row_index=row_index, category=category):
            _require_step(state, event, Step.CATEGORIES, Step.REVIEW)
            return replace(
                state, transactions=_update_row(state, row_index, lambda tx: tx.assign(category))
            )

        case ToggleIncludeDuplicate(row_index=row_index):
            _require_step(state, event, Step.REVIEW)
            return replace(
                state,
                transactions=_update_row(
                    state, row_index, lambda tx: replace(tx, include_anyway=not tx.include_anyway)
                ),
            )

        case MarkDuplicates(indices=indices):
            _require_step(state, event, Step.CATEGORIES, Step.REVIEW)
            return replace(state, transactions=mark_duplicates(state.transactions, set(indices)))

        case GoToStep(step=target):
            return _go_to_step(state, Step(target))

        case CommitStarted():
            if not can_commit(state):
                raise TransitionError("Commit is only allowed from review with an account chosen")
            return replace(
                state,
                is_committing=True,
                commit_progress=0,
                commit_total=0,
                commit_error=None,
                commit_done=False,
            )

        case CommitProgressed(done=done, total=total):
            if not state.is_committing:
                raise TransitionError("No commit is in progress")
            if done < state.commit_progress or not 0 <= done <= total:
                raise TransitionError(f"Commit progress must increase: got {done}/{total}")
            return replace(state, commit_progress=done, commit_total=total)

        case CommitFailed(error=error, account_id=account_id):
            if not state.is_committing:
                raise TransitionError("No commit is in progress")
            if account_id and not state.target_account_id:
                # The drafted account exists now; a retry must target it.
                state = replace(state, target_account_id=account_id, new_account=None)
            return replace(state, is_committing=False, commit_error=error)

        case CommitFinished():
            if not state.is_committing:
                raise TransitionError("No commit is in progress")
            return replace(
                state,
                is_committing=False,
                commit_done=True,
                commit_progress=state.commit_total,
            )

        case Reset():
            return WizardState()

    raise TransitionError(f"Unknown wizard event: {event!r}")


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


class ImportWizard:
    """Drives a :class:`WizardState` through a file import against ``store``.

    ``on_invalidate`` is called after a successful commit so callers can drop
    any cached ledger views.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        settings: ImportSettings | None = None,
        on_invalidate: CompleteCallback | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or ImportSettings.from_env()
        self.on_invalidate = on_invalidate
        self.state = WizardState()

    def dispatch(self, event: WizardEvent) -> WizardState:
        self.state = transition(self.state, event)
        return self.state

    # --- upload / mapping ---------------------------------------------------

    def load_file(self, data: bytes | str) -> WizardState:
        """Tokenize ``data``, detect its format and date format, reset the wizard.

        File-level errors (:class:`~ledger_import.errors.EmptyFileError`,
        :class:`~ledger_import.errors.NoDataRowsError`) propagate before any
        state changes.
        """

        if self.state.is_committing:
            raise TransitionError("Cannot load a file while a commit is in progress")
        tokenized = tokenize(data)
        detection = detect_format(tokenized.headers)
        date_idx = detection.mapping.date
        date_format = DateFormat.AUTO
        if date_idx is not None:
            samples = (row[date_idx] if date_idx < len(row) else "" for row in tokenized.rows)
            date_format = detect_date_format(samples, limit=self.settings.date_sample_size)
        _logger.info(
            "loaded %d row(s); date format %s", len(tokenized.rows), date_format.value
        )
        return self.dispatch(
            FileLoaded(
                headers=tokenized.headers,
                rows=tuple(tokenized.rows),
                detection=detection,
                date_format=date_format,
            )
        )

    def set_format(self, fmt: DetectedFormat, mapping: ColumnMapping | None = None) -> WizardState:
        return self.dispatch(SetFormat(fmt, mapping))

    def set_date_format(self, date_format: DateFormat) -> WizardState:
        return self.dispatch(SetDateFormat(date_format))

    def update_mapping(self, **changes: int | None) -> WizardState:
        return self.dispatch(UpdateMapping(changes))

    # --- account -----------------------------------------------------------

    async def accounts(self) -> list[ExistingAccount]:
        return active_accounts(await self.store.list_accounts())

    def select_account(self, account_id: str) -> WizardState:
        return self.dispatch(SelectAccount(account_id))

    def draft_new_account(self, name: str, account_type: str = "checking") -> WizardState:
        return self.dispatch(DraftNewAccount(NewAccountDraft(name=name, type=account_type)))

    # --- categories / review -----------------------------------------------

    def set_category_action(self, csv_category: str, action: CategoryAction) -> WizardState:
        return self.dispatch(SetCategoryAction(csv_category, action))

    def set_vendor_rule(self, vendor: str, category_id: str | None) -> WizardState:
        return self.dispatch(SetVendorRule(vendor, category_id))

    def apply_vendor_rules(self) -> WizardState:
        return self.dispatch(ApplyVendorRules())

    def set_transaction_category(self, row_index: int, category: CategoryRef | None) -> WizardState:
        return self.dispatch(SetTransactionCategory(row_index, category))

    def toggle_include_duplicate(self, row_index: int) -> WizardState:
        return self.dispatch(ToggleIncludeDuplicate(row_index))

    def summary(self) -> ImportSummary:
        return summarize(self.state.transactions)

    async def check_duplicates(self) -> WizardState:
        """Flag candidates already present in the target account."""

        account_id = self.state.target_account_id
        if account_id is None:
            # A drafted account has no history yet.
            return self.dispatch(MarkDuplicates(frozenset()))
        existing = await self.store.list_account_transactions(account_id)
        indices = find_duplicates(
            self.state.transactions, existing, tolerance=self.settings.duplicate_tolerance
        )
        return self.dispatch(MarkDuplicates(frozenset(indices)))

    # --- navigation --------------------------------------------------------

    async def next_step(self) -> WizardState:
        """Advance one step, running the work attached to the transition."""

        state = self.state
        if state.is_committing:
            raise TransitionError("Cannot change step while a commit is in progress")
        if not can_advance(state):
            raise TransitionError(f"Step {state.step.value} is not ready to advance")

        target = STEPS[STEPS.index(state.step) + 1]
        if state.step is Step.MAPPING:
            result = build_transactions(
                state.rows,
                state.mapping,
                date_format=state.date_format,
                previous=state.transactions,
            )
            self.dispatch(SetTransactions(result))
        elif target is Step.REVIEW:
            await self.check_duplicates()
        return self.dispatch(GoToStep(target))

    def back(self) -> WizardState:
        idx = STEPS.index(self.state.step)
        if idx == 0:
            raise TransitionError("Already at the first step")
        return self.dispatch(GoToStep(STEPS[idx - 1]))

    def reset(self) -> WizardState:
        return self.dispatch(Reset())

    # --- commit ------------------------------------------------------------

    async def commit(self) -> CommitResult:
        """Run the commit from ``review`` and record its outcome in the state.

        A retry after a failed commit re-checks duplicates first so rows that
        made it into the ledger on the previous attempt are excluded.
        """

        if not can_commit(self.state):
            raise TransitionError("Commit is only allowed from review with an account chosen")
        if self.state.commit_error is not None:
            await self.check_duplicates()

        self.dispatch(CommitStarted())
        try:
            categories = await self.store.list_categories()
            groups = await self.store.list_groups()
            result = await commit_import(
                self.state,
                self.store,
                existing_categories=categories,
                existing_groups=groups,
                settings=self.settings,
                on_progress=lambda done, total: self.dispatch(CommitProgressed(done, total)),
                on_complete=self.on_invalidate,
            )
        except Exception as exc:
            self.dispatch(CommitFailed(str(exc) or type(exc).__name__))
            raise

        if result.ok:
            self.dispatch(CommitFinished())
        else:
            self.dispatch(
                CommitFailed(result.error or "Import failed", account_id=result.account_id)
            )
        return result


__all__ = [
    "Step",
    "STEPS",
    "DEFAULT_MAPPING",
    "WizardState",
    "WizardEvent",
    "FileLoaded",
    "SetFormat",
    "SetDateFormat",
    "UpdateMapping",
    "SelectAccount",
    "DraftNewAccount",
    "SetTransactions",
    "SetCategoryAction",
    "SetVendorRule",
    "ApplyVendorRules",
    "SetTransactionCategory",
    "ToggleIncludeDuplicate",
    "MarkDuplicates",
    "GoToStep",
    "CommitStarted",
    "CommitProgressed",
    "CommitFailed",
    "CommitFinished",
    "Reset",
    "can_advance",
    "can_commit",
    "has_account",
    "transition",
    "ImportWizard",
]
