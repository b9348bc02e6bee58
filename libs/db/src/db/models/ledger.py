from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------
# Reference: ledger_accounts
# ---------------------------


class LedgerAccount(Base):
    __tablename__ = "ledger_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "type in ('checking','savings','credit','investment','cash','other')",
            name="ck_ledger_accounts_type",
        ),
    )


# ---------------------------
# Taxonomy: ledger_groups / ledger_categories
# ---------------------------


class LedgerGroup(Base):
    __tablename__ = "ledger_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LedgerCategory(Base):
    __tablename__ = "ledger_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Every category belongs to exactly one group; the import flow creates
    # groups before the categories that reference them.
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ledger_groups.id"), nullable=False
    )
    # Budgeting period; imported categories default to monthly.
    timeframe: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=lambda: {"type": "monthly"}
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Reference: ledger_vendors
# ---------------------------


class LedgerVendor(Base):
    __tablename__ = "ledger_vendors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # Display spelling as first seen; matching is case-insensitive in the
    # import flow, the table itself does not enforce uniqueness.
    name: Mapped[str] = mapped_column(Text, nullable=False)


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ledger_accounts.id"), nullable=False
    )
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("ledger_categories.id"), nullable=True
    )
    # Signed: positive = inflow, negative = outflow.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # Original vendor spelling; normalized forms are computed in-process only.
    vendor: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "type in ('starting','income','payment')",
            name="ck_ledger_tx_type",
        ),
        Index("ix_ledger_tx_user_account_date", "user_id", "account_id", "date"),
    )


__all__ = [
    "Base",
    "LedgerAccount",
    "LedgerGroup",
    "LedgerCategory",
    "LedgerVendor",
    "LedgerTransaction",
]
