"""Commit orchestration: write a reviewed import to the ledger store.

Stages run strictly in order and each awaits its store calls one at a time:

1. ``account``: create the drafted account, if any; its id becomes the target.
2. ``group`` / ``category``: materialize every :class:`Create` action. Pending
   groups are looked up by name (case-insensitive) among known groups and the
   ones created earlier in this commit, so one name yields one group. A
   category whose name already exists in the resolved group is reused.
3. Build payloads: drop excluded duplicates, resolve pending category
   references, classify each row as ``starting``/``income``/``payment``.
4. ``insert``: write payloads in ``batch_size`` chunks, reporting
   ``(done, total)`` after each batch.
5. ``vendors``: register vendor names the ledger does not know yet.
   Best-effort: a failure here is logged and never fails the commit.
6. Call the invalidation hook.

A failure in stages 1-4 aborts the commit. Nothing is rolled back: batches that
were written stay written, and the returned :class:`CommitResult` carries the
inserted count together with the failing stage and batch number.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .categories import normalize_name
from .config import ImportSettings
from .errors import CommitError
from .logging_setup import get_logger
from .models import (
    CategoryAction,
    CategoryRef,
    CommitResult,
    Create,
    ExistingCategory,
    ExistingGroup,
    ExistingGroupRef,
    LedgerTransactionPayload,
    Merge,
    NewAccountDraft,
    ParsedTransaction,
    PendingCategory,
    PendingGroup,
    ResolvedCategory,
    TransactionType,
)
from .store import LedgerStore

if TYPE_CHECKING:
    from .wizard import WizardState

_logger = get_logger("ledger_import.commit")

type ProgressCallback = Callable[[int, int], None]
type CompleteCallback = Callable[[], Awaitable[None] | None]


@dataclass(slots=True)
class _Run:
    """Counters accumulated while a commit runs; read back on success or failure."""

    account_id: str | None = None
    total: int = 0
    skipped_duplicates: int = 0
    inserted: int = 0
    vendors_registered: int = 0
    created_group_ids: list[str] = field(default_factory=list)
    category_ids: dict[str, str] = field(default_factory=dict)

    def result(self, error: CommitError | None = None) -> CommitResult:
        return CommitResult(
            inserted=self.inserted,
            skipped_duplicates=self.skipped_duplicates,
            total=self.total,
            account_id=self.account_id,
            created_group_ids=tuple(self.created_group_ids),
            created_category_ids=dict(self.category_ids),
            vendors_registered=self.vendors_registered,
            error=str(error) if error is not None else None,
            failed_stage=error.stage if error is not None else None,
            failed_batch=error.batch if error is not None else None,
        )


def _fold(name: str) -> str:
    return normalize_name(name).casefold()


def transaction_type(tx: ParsedTransaction) -> TransactionType:
    if tx.is_starting_balance:
        return TransactionType.STARTING
    if tx.amount > 0:
        return TransactionType.INCOME
    return TransactionType.PAYMENT


def _resolve_category_id(ref: CategoryRef | None, category_ids: Mapping[str, str]) -> str | None:
    match ref:
        case ResolvedCategory(id=category_id):
            return category_id
        case PendingCategory(csv_category=csv_category):
            resolved = category_ids.get(csv_category)
            if resolved is None:
                _logger.warning(
                    "no category was created for CSV category %r; leaving uncategorized",
                    csv_category,
                )
            return resolved
        case _:
            return None


def build_payloads(
    transactions: Sequence[ParsedTransaction],
    *,
    account_id: str,
    user_id: str,
    category_ids: Mapping[str, str],
) -> list[LedgerTransactionPayload]:
    """Insertable payloads for every non-excluded candidate, in file order."""

    return [
        LedgerTransactionPayload(
            amount=tx.amount,
            date=tx.date,
            vendor=tx.vendor,
            description=tx.description or None,
            type=transaction_type(tx),
            account_id=account_id,
            user_id=user_id,
            category_id=_resolve_category_id(tx.assigned_category, category_ids),
        )
        for tx in transactions
        if not tx.is_excluded
    ]


async def _ensure_account(
    store: LedgerStore, target_account_id: str | None, draft: NewAccountDraft | None
) -> str:
    if target_account_id:
        return target_account_id
    if draft is None or not draft.is_ready:
        raise CommitError("No account selected", stage="account")
    try:
        account = await store.create_account(draft)
    except Exception as exc:
        raise CommitError(
            f'Failed to create account "{draft.name}": {exc}', stage="account"
        ) from exc
    _logger.info("created account %s (%s)", account.id, draft.name)
    return account.id


async def _materialize_categories(
    store: LedgerStore,
    actions: Mapping[str, CategoryAction],
    existing_categories: Sequence[ExistingCategory],
    existing_groups: Sequence[ExistingGroup],
    run: _Run,
) -> None:
    groups_by_name: dict[str, str] = {}
    for group in existing_groups:
        groups_by_name.setdefault(_fold(group.name), group.id)
    known_categories: dict[tuple[str, str], str] = {}
    for category in existing_categories:
        known_categories.setdefault((category.group_id, _fold(category.name)), category.id)

    for csv_category, action in actions.items():
        if isinstance(action, Merge):
            run.category_ids[csv_category] = action.target_category_id
            continue
        if not isinstance(action, Create):
            continue

        match action.group:
            case ExistingGroupRef(id=group_id):
                pass
            case PendingGroup(name=group_name):
                group_id = groups_by_name.get(_fold(group_name))
                if group_id is None:
                    try:
                        group = await store.create_group(normalize_name(group_name))
                    except Exception as exc:
                        raise CommitError(
                            f'Failed to create group "{group_name}": {exc}', stage="group"
                        ) from exc
                    group_id = group.id
                    groups_by_name[_fold(group_name)] = group_id
                    run.created_group_ids.append(group_id)
                    _logger.info("created group %s (%s)", group_id, group_name)
            case _:
                raise ValueError(f"Unsupported group reference: {action.group!r}")

        key = (group_id, _fold(action.name))
        category_id = known_categories.get(key)
        if category_id is None:
            try:
                category = await store.create_category(normalize_name(action.name), group_id)
            except Exception as exc:
                raise CommitError(
                    f'Failed to create category "{action.name}": {exc}', stage="category"
                ) from exc
            category_id = category.id
            known_categories[key] = category_id
            _logger.info("created category %s (%s)", category_id, action.name)
        else:
            _logger.info("reusing existing category %s for %r", category_id, action.name)
        run.category_ids[csv_category] = category_id


async def _insert_batches(
    store: LedgerStore,
    payloads: Sequence[LedgerTransactionPayload],
    batch_size: int,
    run: _Run,
    on_progress: ProgressCallback | None,
) -> None:
    total = len(payloads)
    if on_progress is not None:
        on_progress(0, total)
    for start in range(0, total, batch_size):
        batch = payloads[start : start + batch_size]
        batch_no = start // batch_size + 1
        try:
            await store.insert_transactions(batch)
        except Exception as exc:
            raise CommitError(
                f"Failed to insert transactions (batch {batch_no}): {exc}",
                stage="insert",
                batch=batch_no,
            ) from exc
        run.inserted = min(start + batch_size, total)
        _logger.info("inserted batch %d (%d/%d)", batch_no, run.inserted, total)
        if on_progress is not None:
            on_progress(run.inserted, total)


async def _register_vendors(
    store: LedgerStore,
    payloads: Sequence[LedgerTransactionPayload],
    settings: ImportSettings,
    run: _Run,
) -> None:
    try:
        known = {v.name.casefold() for v in await store.list_vendors()}
    except Exception as exc:
        _logger.warning("could not list vendors; skipping vendor sync: %s", exc)
        return

    fresh: list[str] = []
    seen: set[str] = set()
    for payload in payloads:
        name = payload.vendor
        if name == settings.starting_balance_vendor or name in seen:
            continue
        seen.add(name)
        if name.casefold() not in known:
            fresh.append(name)

    for start in range(0, len(fresh), settings.batch_size):
        chunk = fresh[start : start + settings.batch_size]
        try:
            await store.insert_vendors(chunk)
        except Exception as exc:
            _logger.warning("vendor sync stopped after %d name(s): %s", run.vendors_registered, exc)
            return
        run.vendors_registered += len(chunk)
    if fresh:
        _logger.info("registered %d new vendor(s)", run.vendors_registered)


async def commit_import(
    state: WizardState,
    store: LedgerStore,
    *,
    existing_categories: Sequence[ExistingCategory],
    existing_groups: Sequence[ExistingGroup],
    settings: ImportSettings | None = None,
    on_progress: ProgressCallback | None = None,
    on_complete: CompleteCallback | None = None,
) -> CommitResult:
    """Write ``state``'s candidates to ``store`` and report the outcome.

    Never raises for store failures: a fatal stage failure is logged and
    returned as a :class:`CommitResult` whose ``error`` names the failing
    entity or batch. ``on_complete`` runs only after a successful commit.
    """

    settings = settings or ImportSettings()
    run = _Run()
    try:
        run.account_id = await _ensure_account(store, state.target_account_id, state.new_account)
        await _materialize_categories(
            store, state.category_actions, existing_categories, existing_groups, run
        )
        payloads = build_payloads(
            state.transactions,
            account_id=run.account_id,
            user_id=store.user_id,
            category_ids=run.category_ids,
        )
        run.total = len(payloads)
        run.skipped_duplicates = len(state.transactions) - run.total
        _logger.info(
            "committing %d transaction(s) to account %s (%d duplicate(s) excluded)",
            run.total,
            run.account_id,
            run.skipped_duplicates,
        )
        await _insert_batches(store, payloads, settings.batch_size, run, on_progress)
    except CommitError as exc:
        _logger.error("commit failed at %s stage: %s", exc.stage, exc)
        return run.result(exc)

    await _register_vendors(store, payloads, settings, run)

    if on_complete is not None:
        outcome = on_complete()
        if inspect.isawaitable(outcome):
            await outcome
    _logger.info("commit finished: %d/%d inserted", run.inserted, run.total)
    return run.result()


__all__ = ["build_payloads", "commit_import", "transaction_type"]
