# ruff: noqa: I001
"""Workflow orchestrators for non-interactive imports.

These functions drive an :class:`~ledger_import.wizard.ImportWizard` from a
file on disk to a committed import using decisions supplied up front (target
account, category merges/creations, duplicate handling). The console script is
a thin layer over them.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from ..categories import csv_category_counts, suggest_merge_target
from ..commit import CompleteCallback
from ..config import ImportSettings
from ..ingest import build_transactions, detect_format, tokenize
from ..models import (
    BuildResult,
    CommitResult,
    Create,
    DateFormat,
    DetectionResult,
    ImportSummary,
    Merge,
    PendingGroup,
    SkippedRow,
)
from ..normalizers import detect_date_format
from ..store import LedgerStore
from ..wizard import ImportWizard

DEFAULT_IMPORT_GROUP = "Imported"


@dataclass(frozen=True, slots=True)
class InspectReport:
    headers: tuple[str, ...]
    detection: DetectionResult
    date_format: DateFormat
    build: BuildResult


@dataclass(frozen=True, slots=True)
class ImportReport:
    result: CommitResult
    summary: ImportSummary
    skipped: tuple[SkippedRow, ...]


def inspect_csv(
    csv_path: str | PathLike[str], *, settings: ImportSettings | None = None
) -> InspectReport:
    """Tokenize, detect, and build a file without touching any ledger.

    File-level errors propagate; a mapping the detector could not complete
    yields an empty build.
    """

    settings = settings or ImportSettings.from_env()
    tokenized = tokenize(Path(csv_path).read_bytes())
    detection = detect_format(tokenized.headers)
    date_format = DateFormat.AUTO
    date_idx = detection.mapping.date
    if date_idx is not None:
        date_format = detect_date_format(
            (row[date_idx] if date_idx < len(row) else "" for row in tokenized.rows),
            limit=settings.date_sample_size,
        )
    if detection.mapping.is_complete():
        build = build_transactions(tokenized.rows, detection.mapping, date_format=date_format)
    else:
        build = BuildResult(transactions=())
    return InspectReport(
        headers=tokenized.headers, detection=detection, date_format=date_format, build=build
    )


async def import_csv(
    csv_path: str | PathLike[str],
    store: LedgerStore,
    *,
    account_id: str | None = None,
    new_account: str | None = None,
    account_type: str = "checking",
    merges: Mapping[str, str] | None = None,
    creates: Mapping[str, str] | None = None,
    auto_merge: bool = True,
    include_duplicates: bool = False,
    settings: ImportSettings | None = None,
    on_progress: Callable[[str], None] | None = None,
    on_invalidate: CompleteCallback | None = None,
) -> ImportReport:
    """End-to-end: file → wizard steps → commit.

    Parameters
    ----------
    account_id / new_account:
        Exactly one is required: an existing target account id, or the name of
        an account to create (of ``account_type``).
    merges:
        CSV category → existing category id.
    creates:
        CSV category → group name; a category named after the CSV category is
        created in that group (the group is created if no group has that name).
    auto_merge:
        Merge remaining CSV categories into an existing category with the same
        name (case-insensitive).
    include_duplicates:
        Import rows that match existing ledger entries anyway.
    on_progress:
        Optional callable receiving short status lines (e.g., ``print``).

    Raises
    ------
    ValueError
        For contradictory account options, or category decisions naming a CSV
        category absent from the file or an unknown category id.
    """

    if (account_id is None) == (new_account is None):
        raise ValueError("Provide exactly one of account_id or new_account")
    merges = dict(merges or {})
    creates = dict(creates or {})
    overlap = sorted(set(merges) & set(creates))
    if overlap:
        raise ValueError(f"CSV categories both merged and created: {', '.join(overlap)}")

    def say(msg: str) -> None:
        if on_progress:
            on_progress(msg)

    wizard = ImportWizard(store, settings=settings, on_invalidate=on_invalidate)
    state = wizard.load_file(Path(csv_path).read_bytes())
    say(
        f"Detected {state.detected_format.value} format "
        f"(confidence {state.confidence:.2f}), {len(state.rows)} row(s)."
    )

    await wizard.next_step()  # → mapping
    state = await wizard.next_step()  # → account; builds candidates
    if state.skipped_rows:
        say(f"Skipped {len(state.skipped_rows)} unusable row(s).")

    if account_id is not None:
        wizard.select_account(account_id)
    else:
        wizard.draft_new_account(new_account or "", account_type)
    state = await wizard.next_step()  # → categories

    present = {name for name, _count in csv_category_counts(state.transactions)}
    unknown = sorted((set(merges) | set(creates)) - present)
    if unknown:
        raise ValueError(f"CSV categories not found in file: {', '.join(unknown)}")

    existing = await store.list_categories()
    by_id = {c.id: c for c in existing}
    for csv_category, category_id in merges.items():
        target = by_id.get(category_id)
        if target is None:
            raise ValueError(f"Unknown category id for {csv_category!r}: {category_id}")
        wizard.set_category_action(csv_category, Merge(target.id, target.name))
    for csv_category, group_name in creates.items():
        wizard.set_category_action(
            csv_category,
            Create(name=csv_category, group=PendingGroup(group_name or DEFAULT_IMPORT_GROUP)),
        )
    if auto_merge:
        for csv_category in sorted(present - set(merges) - set(creates)):
            suggested = suggest_merge_target(csv_category, existing)
            if suggested is not None:
                wizard.set_category_action(csv_category, Merge(suggested.id, suggested.name))

    state = await wizard.next_step()  # → review; checks duplicates
    if include_duplicates:
        for tx in state.transactions:
            if tx.is_duplicate and not tx.include_anyway:
                wizard.toggle_include_duplicate(tx.source_row_index)

    summary = wizard.summary()
    say(
        f"Importing {summary.importing} of {summary.total} "
        f"({summary.duplicates} duplicate(s) excluded)."
    )
    result = await wizard.commit()
    if result.ok:
        say(f"Inserted {result.inserted} transaction(s).")
    return ImportReport(result=result, summary=summary, skipped=wizard.state.skipped_rows)


__all__ = [
    "DEFAULT_IMPORT_GROUP",
    "InspectReport",
    "ImportReport",
    "inspect_csv",
    "import_csv",
]
