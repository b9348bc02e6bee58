"""Category resolution: CSV categories and vendor rules → assigned categories.

Two surfaces write the same ``assigned_category`` field on candidates:

- **CSV-category actions** (:class:`Merge`, :class:`Create`, :class:`Skip`),
  keyed by the raw CSV category string. Setting an action re-applies it to
  every candidate sharing that string: merge assigns the existing category,
  create assigns ``PendingCategory(csv_category)``, skip clears it.
- **Vendor rules**, keyed by normalized vendor, mapping to an existing
  category id. A rule only fills candidates that have no assignment yet.

Precedence is fixed rather than call-order dependent: after any action is
applied, vendor rules are re-evaluated against the still-unassigned
candidates (:func:`resolve_assignments`). A CSV-category decision therefore
always wins over a vendor rule, whichever was recorded first, and re-applying
either is idempotent.

Exports
-------
- ``apply_category_action``, ``apply_vendor_rule``, ``apply_vendor_rules``,
  ``resolve_assignments``: pure functions over candidate sequences.
- ``normalize_name`` / ``validate_name``: checks for names of categories and
  groups created during import.
- ``csv_category_counts``, ``vendor_counts``, ``categorization_progress``,
  ``suggest_merge_target``, ``category_display_name``: inputs for the
  categorization and review screens.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .models import (
    CategoryAction,
    CategoryRef,
    Create,
    ExistingCategory,
    Merge,
    ParsedTransaction,
    PendingCategory,
    PendingGroup,
    ResolvedCategory,
    Skip,
    VendorCount,
)
from .normalizers import normalize_vendor

# ---------------------------
# Name normalization/validation
# ---------------------------

MAX_NAME_LENGTH = 64


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``."""

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, max_len: int = MAX_NAME_LENGTH) -> NameValidation:
    """Validate a category or group name created during import.

    Names are compared after :func:`normalize_name`; they must be non-empty,
    at most ``max_len`` characters, and free of control characters.
    """

    n = normalize_name(name)
    if not n:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if any(not ch.isprintable() for ch in n):
        return NameValidation(False, "Name cannot contain control characters")
    return NameValidation(True, None)


def validate_action(action: CategoryAction) -> CategoryAction:
    """Return ``action`` with normalized names, raising ``ValueError`` if invalid."""

    match action:
        case Merge(target_category_id=target) if not target.strip():
            raise ValueError("Merge action requires a target category id")
        case Create(name=name, group=group):
            v = validate_name(name)
            if not v.ok:
                raise ValueError(f"Invalid category name: {v.reason}")
            if isinstance(group, PendingGroup):
                vg = validate_name(group.name)
                if not vg.ok:
                    raise ValueError(f"Invalid group name: {vg.reason}")
                group = PendingGroup(normalize_name(group.name))
            return Create(name=normalize_name(name), group=group)
        case Merge() | Skip():
            pass
        case _:
            raise ValueError(f"Unsupported category action: {action!r}")
    return action


# ---------------------------
# Resolution
# ---------------------------


def action_ref(csv_category: str, action: CategoryAction) -> CategoryRef | None:
    """The assignment an action produces for candidates with ``csv_category``."""

    match action:
        case Merge(target_category_id=target):
            return ResolvedCategory(target)
        case Create():
            return PendingCategory(csv_category)
        case _:
            return None


def apply_category_action(
    transactions: Sequence[ParsedTransaction], csv_category: str, action: CategoryAction
) -> tuple[ParsedTransaction, ...]:
    """Re-assign every candidate whose CSV category equals ``csv_category``."""

    ref = action_ref(csv_category, action)
    return tuple(
        tx.assign(ref) if tx.csv_category == csv_category else tx for tx in transactions
    )


def apply_vendor_rule(
    transactions: Sequence[ParsedTransaction], vendor: str, category_id: str
) -> tuple[ParsedTransaction, ...]:
    """Assign ``category_id`` to unassigned candidates from ``vendor``."""

    key = normalize_vendor(vendor)
    ref = ResolvedCategory(category_id)
    return tuple(
        tx.assign(ref)
        if tx.assigned_category is None and normalize_vendor(tx.vendor) == key
        else tx
        for tx in transactions
    )


def apply_vendor_rules(
    transactions: Sequence[ParsedTransaction], rules: Mapping[str, str]
) -> tuple[ParsedTransaction, ...]:
    """Fill every unassigned candidate whose normalized vendor has a rule."""

    if not rules:
        return tuple(transactions)
    out: list[ParsedTransaction] = []
    for tx in transactions:
        category_id = rules.get(normalize_vendor(tx.vendor))
        if tx.assigned_category is None and category_id:
            tx = tx.assign(ResolvedCategory(category_id))
        out.append(tx)
    return tuple(out)


def resolve_assignments(
    transactions: Sequence[ParsedTransaction],
    actions: Mapping[str, CategoryAction],
    rules: Mapping[str, str],
) -> tuple[ParsedTransaction, ...]:
    """Apply all CSV-category actions, then vendor rules to what is left.

    Candidates whose CSV category has no recorded action keep their current
    assignment (manual per-row choices or earlier vendor rules).
    """

    out: list[ParsedTransaction] = []
    for tx in transactions:
        action = actions.get(tx.csv_category) if tx.csv_category else None
        if action is not None:
            tx = tx.assign(action_ref(tx.csv_category, action))
        out.append(tx)
    return apply_vendor_rules(out, rules)


# ---------------------------
# Categorization screen inputs
# ---------------------------


def csv_category_counts(transactions: Sequence[ParsedTransaction]) -> list[tuple[str, int]]:
    """Distinct non-empty CSV categories, most frequent first.

    Starting-balance rows are ignored; ties keep first-seen order.
    """

    counts = Counter(
        tx.csv_category for tx in transactions if tx.csv_category and not tx.is_starting_balance
    )
    return counts.most_common()


def vendor_counts(transactions: Sequence[ParsedTransaction]) -> list[VendorCount]:
    """Distinct normalized vendors with their first-seen spelling, most frequent first."""

    originals: dict[str, str] = {}
    counts: Counter[str] = Counter()
    for tx in transactions:
        if tx.is_starting_balance:
            continue
        key = normalize_vendor(tx.vendor)
        originals.setdefault(key, tx.vendor)
        counts[key] += 1
    return [VendorCount(key, originals[key], n) for key, n in counts.most_common()]


def categorization_progress(transactions: Sequence[ParsedTransaction]) -> tuple[int, int]:
    """``(categorized, total)`` over non-starting-balance candidates."""

    relevant = [tx for tx in transactions if not tx.is_starting_balance]
    done = sum(1 for tx in relevant if tx.assigned_category is not None)
    return done, len(relevant)


def suggest_merge_target(
    csv_category: str, existing: Sequence[ExistingCategory]
) -> ExistingCategory | None:
    """An existing category whose name matches ``csv_category`` ignoring case/spacing."""

    key = normalize_name(csv_category).casefold()
    if not key:
        return None
    for category in existing:
        if normalize_name(category.name).casefold() == key:
            return category
    return None


def category_display_name(
    tx: ParsedTransaction,
    actions: Mapping[str, CategoryAction],
    existing: Sequence[ExistingCategory],
) -> str | None:
    """Human label for a candidate's assignment, or ``None`` when unassigned."""

    ref = tx.assigned_category
    match ref:
        case None:
            return None
        case PendingCategory(csv_category=csv_category):
            action = actions.get(csv_category)
            return action.name if isinstance(action, Create) else csv_category
        case ResolvedCategory(id=category_id):
            for category in existing:
                if category.id == category_id:
                    return category.name
            action = actions.get(tx.csv_category)
            if isinstance(action, Merge) and action.target_category_id == category_id:
                return action.target_category_name or None
            return None
    return None


__all__ = [
    "MAX_NAME_LENGTH",
    "normalize_name",
    "validate_name",
    "NameValidation",
    "validate_action",
    "action_ref",
    "apply_category_action",
    "apply_vendor_rule",
    "apply_vendor_rules",
    "resolve_assignments",
    "csv_category_counts",
    "vendor_counts",
    "categorization_progress",
    "suggest_merge_target",
    "category_display_name",
]
