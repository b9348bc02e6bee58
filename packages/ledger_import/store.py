"""Read/write contract the import pipeline needs from the ledger store.

The pipeline never talks to a database directly. Everything it reads (accounts,
taxonomy, vendors, an account's existing transactions) and everything it writes
(new accounts, groups, categories, transactions, vendor names) goes through a
:class:`LedgerStore`. Every call is scoped to the single ``user_id`` the store
was constructed for.

Adapters raise :class:`~ledger_import.errors.StoreError` (or let the underlying
driver error propagate) on failed writes; the commit orchestrator turns either
into a failed :class:`~ledger_import.models.CommitResult`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import (
    ExistingAccount,
    ExistingCategory,
    ExistingGroup,
    ExistingTransaction,
    ExistingVendor,
    LedgerTransactionPayload,
    NewAccountDraft,
)


class LedgerStore(Protocol):
    user_id: str

    async def list_accounts(self) -> list[ExistingAccount]: ...

    async def list_categories(self) -> list[ExistingCategory]: ...

    async def list_groups(self) -> list[ExistingGroup]: ...

    async def list_vendors(self) -> list[ExistingVendor]: ...

    async def list_account_transactions(self, account_id: str) -> list[ExistingTransaction]: ...

    async def create_account(self, draft: NewAccountDraft) -> ExistingAccount: ...

    async def create_group(self, name: str) -> ExistingGroup: ...

    async def create_category(self, name: str, group_id: str) -> ExistingCategory: ...

    async def insert_transactions(self, payloads: Sequence[LedgerTransactionPayload]) -> int:
        """Insert one batch; return the number of rows written."""
        ...

    async def insert_vendors(self, names: Sequence[str]) -> int: ...


def active_accounts(accounts: Sequence[ExistingAccount]) -> list[ExistingAccount]:
    """Accounts offered as import targets: active ones, the default first."""

    active = [a for a in accounts if a.is_active]
    return sorted(active, key=lambda a: not a.is_default)


__all__ = ["LedgerStore", "active_accounts"]
