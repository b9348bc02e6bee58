"""DB helpers for tests: bootstrap a temporary SQLite ledger and seed rows."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import LedgerAccount, LedgerCategory, LedgerGroup, LedgerTransaction
from sqlalchemy import event


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize the ledger schema, return the URL.

    Using a file-backed SQLite DB ensures the worker-thread connections opened
    by the store share the same state (in-memory DBs are per-connection).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    Base.metadata.create_all(bind=engine)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_account(
    *, database_url: str, user_id: str, name: str = "Current", account_type: str = "checking"
) -> str:
    with session_scope(database_url=database_url) as session:
        row = LedgerAccount(user_id=user_id, name=name, type=account_type)
        session.add(row)
        session.flush()
        return row.id


def seed_category(
    *, database_url: str, user_id: str, name: str, group_name: str = "Everyday"
) -> tuple[str, str]:
    """Insert a category (and its group); return ``(category_id, group_id)``."""

    with session_scope(database_url=database_url) as session:
        group = LedgerGroup(user_id=user_id, name=group_name)
        session.add(group)
        session.flush()
        category = LedgerCategory(user_id=user_id, name=name, group_id=group.id)
        session.add(category)
        session.flush()
        return category.id, group.id


def seed_transaction(
    *,
    database_url: str,
    user_id: str,
    account_id: str,
    on: str,
    vendor: str,
    amount: str,
) -> None:
    with session_scope(database_url=database_url) as session:
        session.add(
            LedgerTransaction(
                user_id=user_id,
                account_id=account_id,
                amount=Decimal(amount),
                date=date.fromisoformat(on),
                vendor=vendor,
                type="payment" if Decimal(amount) <= 0 else "income",
            )
        )
