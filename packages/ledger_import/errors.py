"""Exception types raised by the import pipeline."""

from __future__ import annotations


class LedgerImportError(Exception):
    """Base class for all ``ledger_import`` failures."""


class FileParseError(LedgerImportError, ValueError):
    """The uploaded file cannot yield any transactions at all."""


class EmptyFileError(FileParseError):
    def __init__(self, message: str = "CSV file is empty") -> None:
        super().__init__(message)


class NoDataRowsError(FileParseError):
    def __init__(self, message: str = "CSV file has headers but no data rows") -> None:
        super().__init__(message)


class TransitionError(LedgerImportError):
    """A wizard event was rejected in the current state."""


class StoreError(LedgerImportError):
    """A ledger store adapter failed to read or write."""


class CommitError(LedgerImportError):
    """A fatal failure during commit.

    ``stage`` is one of ``account``, ``group``, ``category``, ``insert`` or
    ``vendors``; ``batch`` is the 1-based batch number for insert failures.
    """

    def __init__(self, message: str, *, stage: str, batch: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.batch = batch


__all__ = [
    "LedgerImportError",
    "FileParseError",
    "EmptyFileError",
    "NoDataRowsError",
    "TransitionError",
    "StoreError",
    "CommitError",
]
