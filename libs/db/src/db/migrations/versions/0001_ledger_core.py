# ruff: noqa: I001
"""Ledger core tables: accounts, groups, categories, vendors, transactions.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-16
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ledger_accounts
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "type in ('checking','savings','credit','investment','cash','other')",
            name="ck_ledger_accounts_type",
        ),
    )
    op.create_index("ix_ledger_accounts_user_id", "ledger_accounts", ["user_id"])

    # ledger_groups
    op.create_table(
        "ledger_groups",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_ledger_groups_user_id", "ledger_groups", ["user_id"])

    # ledger_categories
    op.create_table(
        "ledger_categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("group_id", sa.String(36), nullable=False),
        sa.Column("timeframe", sa.JSON(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["group_id"], ["ledger_groups.id"]),
    )
    op.create_index("ix_ledger_categories_user_id", "ledger_categories", ["user_id"])

    # ledger_vendors
    op.create_table(
        "ledger_vendors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
    )
    op.create_index("ix_ledger_vendors_user_id", "ledger_vendors", ["user_id"])

    # ledger_transactions
    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("account_id", sa.String(36), nullable=False),
        sa.Column("category_id", sa.String(36), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("vendor", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["ledger_categories.id"]),
        sa.CheckConstraint(
            "type in ('starting','income','payment')",
            name="ck_ledger_tx_type",
        ),
    )
    op.create_index(
        "ix_ledger_tx_user_account_date",
        "ledger_transactions",
        ["user_id", "account_id", "date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_tx_user_account_date", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_index("ix_ledger_vendors_user_id", table_name="ledger_vendors")
    op.drop_table("ledger_vendors")
    op.drop_index("ix_ledger_categories_user_id", table_name="ledger_categories")
    op.drop_table("ledger_categories")
    op.drop_index("ix_ledger_groups_user_id", table_name="ledger_groups")
    op.drop_table("ledger_groups")
    op.drop_index("ix_ledger_accounts_user_id", table_name="ledger_accounts")
    op.drop_table("ledger_accounts")
