"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the personal-ledger models written by ``ledger_import``.
"""

from .ledger import (
    Base,
    LedgerAccount,
    LedgerCategory,
    LedgerGroup,
    LedgerTransaction,
    LedgerVendor,
)

__all__ = [
    "Base",
    "LedgerAccount",
    "LedgerCategory",
    "LedgerGroup",
    "LedgerTransaction",
    "LedgerVendor",
]
