# ruff: noqa: I001
"""SQLAlchemy-backed :class:`~ledger_import.store.LedgerStore`.

Reads and writes the shared ledger tables owned by ``libs/db`` through the
ORM models in ``db.models.ledger`` and sessions from ``db.client``.

Each store call opens its own short ``session_scope`` on a worker thread, so
every inserted batch is committed on its own. A failed batch rolls back only
itself; batches written earlier in the same import stay written.
"""

from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import Callable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.ledger import (
    LedgerAccount,
    LedgerCategory,
    LedgerGroup,
    LedgerTransaction,
    LedgerVendor,
)
from .errors import StoreError
from .logging_setup import get_logger
from .models import (
    ExistingAccount,
    ExistingCategory,
    ExistingGroup,
    ExistingTransaction,
    ExistingVendor,
    LedgerTransactionPayload,
    NewAccountDraft,
)

_logger = get_logger("ledger_import.persistence")

T = TypeVar("T")

_CENTS = Decimal("0.01")


def _to_date(raw: str) -> dt.date:
    return dt.date.fromisoformat(raw)


def _to_decimal_2(raw: Decimal) -> Decimal:
    return raw.quantize(_CENTS, rounding=ROUND_HALF_UP)


class SqlLedgerStore:
    """Ledger store for one user on the database at ``database_url``.

    ``database_url`` falls back to ``DATABASE_URL`` like the rest of the
    workspace.
    """

    def __init__(self, user_id: str, *, database_url: str | None = None) -> None:
        if not user_id.strip():
            raise ValueError("SqlLedgerStore requires a non-empty user_id")
        self.user_id = user_id
        self.database_url = database_url

    async def _run(self, op: str, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with session_scope(database_url=self.database_url) as session:
                return fn(session)

        try:
            return await asyncio.to_thread(work)
        except SQLAlchemyError as exc:
            _logger.debug("store operation %s failed: %s", op, exc)
            raise StoreError(f"{op} failed: {exc.__class__.__name__}: {exc}") from exc

    # --- reads -------------------------------------------------------------

    async def list_accounts(self) -> list[ExistingAccount]:
        def q(s: Session) -> list[ExistingAccount]:
            rows = s.scalars(
                select(LedgerAccount)
                .where(LedgerAccount.user_id == self.user_id)
                .order_by(LedgerAccount.created_at, LedgerAccount.name)
            )
            return [
                ExistingAccount(
                    id=a.id,
                    name=a.name,
                    type=a.type,
                    is_active=a.is_active,
                    is_default=a.is_default,
                )
                for a in rows
            ]

        return await self._run("list_accounts", q)

    async def list_groups(self) -> list[ExistingGroup]:
        def q(s: Session) -> list[ExistingGroup]:
            rows = s.scalars(
                select(LedgerGroup)
                .where(LedgerGroup.user_id == self.user_id)
                .order_by(LedgerGroup.name)
            )
            return [ExistingGroup(id=g.id, name=g.name) for g in rows]

        return await self._run("list_groups", q)

    async def list_categories(self) -> list[ExistingCategory]:
        def q(s: Session) -> list[ExistingCategory]:
            rows = s.execute(
                select(LedgerCategory, LedgerGroup.name)
                .join(LedgerGroup, LedgerGroup.id == LedgerCategory.group_id)
                .where(LedgerCategory.user_id == self.user_id)
                .order_by(LedgerGroup.name, LedgerCategory.name)
            )
            return [
                ExistingCategory(id=c.id, name=c.name, group_id=c.group_id, group_name=group_name)
                for c, group_name in rows
            ]

        return await self._run("list_categories", q)

    async def list_vendors(self) -> list[ExistingVendor]:
        def q(s: Session) -> list[ExistingVendor]:
            rows = s.scalars(select(LedgerVendor).where(LedgerVendor.user_id == self.user_id))
            return [ExistingVendor(id=v.id, name=v.name) for v in rows]

        return await self._run("list_vendors", q)

    async def list_account_transactions(self, account_id: str) -> list[ExistingTransaction]:
        def q(s: Session) -> list[ExistingTransaction]:
            rows = s.execute(
                select(LedgerTransaction.date, LedgerTransaction.vendor, LedgerTransaction.amount)
                .where(
                    (LedgerTransaction.user_id == self.user_id)
                    & (LedgerTransaction.account_id == account_id)
                )
            )
            return [
                ExistingTransaction(date=d.isoformat(), vendor=vendor, amount=Decimal(amount))
                for d, vendor, amount in rows
            ]

        return await self._run("list_account_transactions", q)

    # --- writes ------------------------------------------------------------

    async def create_account(self, draft: NewAccountDraft) -> ExistingAccount:
        def w(s: Session) -> ExistingAccount:
            row = LedgerAccount(
                user_id=self.user_id,
                name=draft.name.strip(),
                type=draft.type,
                is_active=True,
                is_default=False,
            )
            s.add(row)
            s.flush()
            return ExistingAccount(id=row.id, name=row.name, type=row.type)

        return await self._run("create_account", w)

    async def create_group(self, name: str) -> ExistingGroup:
        def w(s: Session) -> ExistingGroup:
            row = LedgerGroup(user_id=self.user_id, name=name)
            s.add(row)
            s.flush()
            return ExistingGroup(id=row.id, name=row.name)

        return await self._run("create_group", w)

    async def create_category(self, name: str, group_id: str) -> ExistingCategory:
        def w(s: Session) -> ExistingCategory:
            group = s.get(LedgerGroup, group_id)
            if group is None or group.user_id != self.user_id:
                raise StoreError(f"group {group_id} does not exist")
            row = LedgerCategory(
                user_id=self.user_id, name=name, group_id=group_id, timeframe={"type": "monthly"}
            )
            s.add(row)
            s.flush()
            return ExistingCategory(
                id=row.id, name=row.name, group_id=group_id, group_name=group.name
            )

        return await self._run("create_category", w)

    async def insert_transactions(self, payloads: Sequence[LedgerTransactionPayload]) -> int:
        def w(s: Session) -> int:
            for p in payloads:
                if p.user_id != self.user_id:
                    raise StoreError("payload user_id does not match the store's user")
                s.add(
                    LedgerTransaction(
                        user_id=p.user_id,
                        account_id=p.account_id,
                        category_id=p.category_id,
                        amount=_to_decimal_2(p.amount),
                        date=_to_date(p.date),
                        vendor=p.vendor,
                        description=p.description,
                        type=p.type.value,
                    )
                )
            s.flush()
            return len(payloads)

        return await self._run("insert_transactions", w)

    async def insert_vendors(self, names: Sequence[str]) -> int:
        def w(s: Session) -> int:
            s.add_all(LedgerVendor(user_id=self.user_id, name=name) for name in names)
            return len(names)

        return await self._run("insert_vendors", w)


__all__ = ["SqlLedgerStore"]
