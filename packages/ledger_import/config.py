"""Runtime settings for the import pipeline.

Settings are plain values with environment overrides, resolved the same way
the console script resolves its other knobs: an explicit argument wins, then
the environment, then the default. Malformed or non-positive environment
values are ignored.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

DEFAULT_BATCH_SIZE = 50
DEFAULT_DUPLICATE_TOLERANCE = Decimal("0.015")
DEFAULT_DATE_SAMPLE_SIZE = 20
STARTING_BALANCE_VENDOR = "Starting Balance"


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _env_positive_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return default
    return value if value.is_finite() and value > 0 else default


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Tunables shared by the wizard and the commit orchestrator.

    Attributes
    ----------
    batch_size:
        Transactions (and vendors) written per store call during commit.
    duplicate_tolerance:
        Absolute amount delta under which two same-day, same-vendor entries are
        the same transaction. Absorbs rounding drift only.
    date_sample_size:
        Number of date-column values inspected to pick a file-wide date format.
    starting_balance_vendor:
        Sentinel vendor label never registered in the vendor list.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    duplicate_tolerance: Decimal = DEFAULT_DUPLICATE_TOLERANCE
    date_sample_size: int = DEFAULT_DATE_SAMPLE_SIZE
    starting_balance_vendor: str = STARTING_BALANCE_VENDOR

    def __post_init__(self) -> None:
        if isinstance(self.batch_size, bool) or self.batch_size < 1:
            raise ValueError("ImportSettings.batch_size must be a positive integer")
        if self.duplicate_tolerance < 0:
            raise ValueError("ImportSettings.duplicate_tolerance must be non-negative")
        if self.date_sample_size < 1:
            raise ValueError("ImportSettings.date_sample_size must be a positive integer")

    @classmethod
    def from_env(cls) -> ImportSettings:
        return cls(
            batch_size=_env_positive_int("LEDGER_IMPORT_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            duplicate_tolerance=_env_positive_decimal(
                "LEDGER_IMPORT_DUPLICATE_TOLERANCE", DEFAULT_DUPLICATE_TOLERANCE
            ),
            date_sample_size=_env_positive_int(
                "LEDGER_IMPORT_DATE_SAMPLES", DEFAULT_DATE_SAMPLE_SIZE
            ),
        )


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_DUPLICATE_TOLERANCE",
    "DEFAULT_DATE_SAMPLE_SIZE",
    "STARTING_BALANCE_VENDOR",
    "ImportSettings",
]
