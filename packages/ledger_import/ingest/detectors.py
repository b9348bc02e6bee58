"""Format detection from the header row.

Detectors run in priority order, profile-specific before generic:

1. ``ynab``: Date, Payee, Inflow, Outflow (optional Memo, Category).
2. ``starling``: Date, Counter Party, an ``Amount (GBP|EUR|USD)`` column
   (optional Reference, Spending Category). A bare ``Amount`` column still
   matches, at a confidence below the profile threshold.
3. ``generic``: any date-like and amount-like column; the vendor is the first
   vendor-like column, else the first column not claimed by another role.
4. ``best-guess``: name lookups falling back to columns 0/1/2 for
   date/vendor/amount, at confidence 0.

A profile wins at confidence ≥ 0.8 and the generic detector at ≥ 0.5.
Confidence is a fixed score per detector branch; cell contents are never
inspected here.

Header matching is done on lower-cased, trimmed names: each candidate list is
first searched for an exact header, then for a header containing a candidate.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..logging_setup import get_logger
from ..models import ColumnMapping, DetectedFormat, DetectionResult

_logger = get_logger("ledger_import.ingest.detectors")

PROFILE_MIN_CONFIDENCE = 0.8
GENERIC_MIN_CONFIDENCE = 0.5

_DATE_NAMES = ("date", "transaction date", "trans date", "posting date", "value date")
_AMOUNT_NAMES = ("amount", "value", "debit/credit", "transaction amount")
_VENDOR_NAMES = (
    "description",
    "payee",
    "vendor",
    "merchant",
    "name",
    "counter party",
    "counterparty",
    "transaction description",
    "details",
    "narrative",
)
_MEMO_NAMES = ("memo", "notes", "reference", "ref", "additional info")
_CATEGORY_NAMES = ("category", "spending category", "type")
_CURRENCY_CODES = ("gbp", "eur", "usd")


def find_column(normalized: Sequence[str], candidates: Sequence[str]) -> int | None:
    """Index of the first header matching a candidate, exact before substring."""

    for candidate in candidates:
        for idx, header in enumerate(normalized):
            if header == candidate:
                return idx
    for candidate in candidates:
        for idx, header in enumerate(normalized):
            if candidate in header:
                return idx
    return None


def _first_unused(normalized: Sequence[str], used: Sequence[int | None]) -> int | None:
    taken = {i for i in used if i is not None}
    for idx in range(len(normalized)):
        if idx not in taken:
            return idx
    return None


def _detect_ynab(normalized: Sequence[str]) -> DetectionResult | None:
    date_idx = find_column(normalized, ["date"])
    payee_idx = find_column(normalized, ["payee"])
    inflow_idx = find_column(normalized, ["inflow"])
    outflow_idx = find_column(normalized, ["outflow"])
    if None in (date_idx, payee_idx, inflow_idx, outflow_idx):
        return None

    return DetectionResult(
        format=DetectedFormat.YNAB,
        mapping=ColumnMapping(
            date=date_idx,
            vendor=payee_idx,
            inflow=inflow_idx,
            outflow=outflow_idx,
            description=find_column(normalized, ["memo", "notes"]),
            category=find_column(
                normalized, ["category", "category group/category", "category group"]
            ),
        ),
        confidence=0.95,
        detector="ynab",
    )


def _detect_starling(normalized: Sequence[str]) -> DetectionResult | None:
    date_idx = find_column(normalized, ["date"])
    counter_party_idx = find_column(normalized, ["counter party", "counterparty"])
    if date_idx is None or counter_party_idx is None:
        return None

    amount_idx = next(
        (
            idx
            for idx, header in enumerate(normalized)
            if "amount" in header and any(code in header for code in _CURRENCY_CODES)
        ),
        None,
    )
    confidence = 0.9
    detector = "starling"
    if amount_idx is None:
        # Starling-like layout without a currency-tagged amount header.
        amount_idx = find_column(normalized, ["amount"])
        if amount_idx is None:
            return None
        confidence = 0.7
        detector = "starling-loose"

    return DetectionResult(
        format=DetectedFormat.STARLING,
        mapping=ColumnMapping(
            date=date_idx,
            vendor=counter_party_idx,
            amount=amount_idx,
            description=find_column(normalized, ["reference", "ref", "memo"]),
            category=find_column(normalized, ["spending category", "category"]),
        ),
        confidence=confidence,
        detector=detector,
    )


def _detect_generic(normalized: Sequence[str]) -> DetectionResult | None:
    date_idx = find_column(normalized, _DATE_NAMES)
    amount_idx = find_column(normalized, _AMOUNT_NAMES)
    if date_idx is None or amount_idx is None:
        return None

    description_idx = find_column(normalized, _MEMO_NAMES)
    category_idx = find_column(normalized, _CATEGORY_NAMES)
    vendor_idx = find_column(normalized, _VENDOR_NAMES)
    if vendor_idx is None:
        vendor_idx = _first_unused(
            normalized, [date_idx, amount_idx, description_idx, category_idx]
        )
    if vendor_idx is None:
        return None

    return DetectionResult(
        format=DetectedFormat.CUSTOM,
        mapping=ColumnMapping(
            date=date_idx,
            vendor=vendor_idx,
            amount=amount_idx,
            description=description_idx,
            category=category_idx,
        ),
        confidence=0.6,
        detector="generic",
    )


def _best_guess(normalized: Sequence[str]) -> DetectionResult:
    date_idx = find_column(normalized, ["date"])
    vendor_idx = find_column(normalized, ["description", "payee", "vendor", "name"])
    amount_idx = find_column(normalized, ["amount", "value"])
    return DetectionResult(
        format=DetectedFormat.CUSTOM,
        mapping=ColumnMapping(
            date=0 if date_idx is None else date_idx,
            vendor=1 if vendor_idx is None else vendor_idx,
            amount=2 if amount_idx is None else amount_idx,
        ),
        confidence=0.0,
        detector="best-guess",
    )


type Detector = Callable[[Sequence[str]], DetectionResult | None]

# (detector, minimum confidence to accept its result), in priority order.
DETECTORS: tuple[tuple[Detector, float], ...] = (
    (_detect_ynab, PROFILE_MIN_CONFIDENCE),
    (_detect_starling, PROFILE_MIN_CONFIDENCE),
    (_detect_generic, GENERIC_MIN_CONFIDENCE),
)


def detect_format(headers: Sequence[str]) -> DetectionResult:
    """Return the best format guess and column mapping for ``headers``."""

    normalized = [h.strip().lower() for h in headers]
    for detector, threshold in DETECTORS:
        result = detector(normalized)
        if result is not None and result.confidence >= threshold:
            _logger.info(
                "detected %s format via %s detector (confidence %.2f)",
                result.format.value,
                result.detector,
                result.confidence,
            )
            return result

    result = _best_guess(normalized)
    _logger.info("no detector matched %d header(s); using best-guess mapping", len(headers))
    return result


__all__ = [
    "PROFILE_MIN_CONFIDENCE",
    "GENERIC_MIN_CONFIDENCE",
    "DETECTORS",
    "find_column",
    "detect_format",
]
