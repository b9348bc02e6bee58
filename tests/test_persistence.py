from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from db.client import session_scope
from db.models.ledger import LedgerTransaction
from ledger_import.errors import StoreError
from ledger_import.models import LedgerTransactionPayload, NewAccountDraft, TransactionType
from ledger_import.persistence import SqlLedgerStore
from tests.helpers.db import (
    bootstrap_sqlite_db,
    seed_account,
    seed_category,
    seed_transaction,
)

USER = "user-1"


@pytest.fixture()
def db_url(tmp_path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.db")


def _payload(account_id: str, **kw) -> LedgerTransactionPayload:
    fields = {
        "amount": Decimal("-42.004"),
        "date": "2024-01-05",
        "vendor": "Tesco",
        "type": TransactionType.PAYMENT,
        "account_id": account_id,
        "user_id": USER,
    }
    fields.update(kw)
    return LedgerTransactionPayload(**fields)


def test_store_requires_user_id():
    with pytest.raises(ValueError):
        SqlLedgerStore("  ")


async def test_reads_are_scoped_to_user(db_url):
    mine = seed_account(database_url=db_url, user_id=USER, name="Current")
    seed_account(database_url=db_url, user_id="someone-else", name="Theirs")
    cat_id, group_id = seed_category(
        database_url=db_url, user_id=USER, name="Groceries", group_name="Everyday"
    )
    seed_transaction(
        database_url=db_url,
        user_id=USER,
        account_id=mine,
        on="2024-01-05",
        vendor="Tesco",
        amount="-42.00",
    )

    store = SqlLedgerStore(USER, database_url=db_url)
    accounts = await store.list_accounts()
    assert [a.id for a in accounts] == [mine]
    assert accounts[0].is_active

    categories = await store.list_categories()
    assert [(c.id, c.name, c.group_id, c.group_name) for c in categories] == [
        (cat_id, "Groceries", group_id, "Everyday")
    ]
    assert [g.name for g in await store.list_groups()] == ["Everyday"]

    existing = await store.list_account_transactions(mine)
    assert len(existing) == 1
    assert existing[0].date == "2024-01-05"
    assert existing[0].vendor == "Tesco"
    assert existing[0].amount == Decimal("-42.00")


async def test_create_account_group_and_category(db_url):
    store = SqlLedgerStore(USER, database_url=db_url)
    account = await store.create_account(NewAccountDraft(" Holiday fund ", "savings"))
    assert account.name == "Holiday fund"
    assert account.type == "savings"

    group = await store.create_group("Imported")
    category = await store.create_category("Fuel", group.id)
    assert category.group_id == group.id
    assert category.group_name == "Imported"
    assert [c.name for c in await store.list_categories()] == ["Fuel"]


async def test_create_category_rejects_foreign_group(db_url):
    _, foreign_group = seed_category(database_url=db_url, user_id="someone-else", name="X")
    store = SqlLedgerStore(USER, database_url=db_url)
    with pytest.raises(StoreError, match="does not exist"):
        await store.create_category("Fuel", foreign_group)


async def test_insert_transactions_rounds_amounts_and_keeps_fields(db_url):
    account_id = seed_account(database_url=db_url, user_id=USER)
    store = SqlLedgerStore(USER, database_url=db_url)
    written = await store.insert_transactions(
        [
            _payload(account_id, description="weekly shop"),
            _payload(
                account_id,
                amount=Decimal("100"),
                vendor="Starting Balance",
                type=TransactionType.STARTING,
            ),
        ]
    )
    assert written == 2

    with session_scope(database_url=db_url) as s:
        rows = s.scalars(select(LedgerTransaction).order_by(LedgerTransaction.vendor)).all()
        got = [(r.vendor, r.amount, r.type, r.description, r.category_id) for r in rows]
    assert got == [
        ("Starting Balance", Decimal("100.00"), "starting", None, None),
        ("Tesco", Decimal("-42.00"), "payment", "weekly shop", None),
    ]


async def test_insert_rejects_other_users_payloads(db_url):
    account_id = seed_account(database_url=db_url, user_id=USER)
    store = SqlLedgerStore(USER, database_url=db_url)
    with pytest.raises(StoreError, match="user_id"):
        await store.insert_transactions([_payload(account_id, user_id="intruder")])
    assert await store.list_account_transactions(account_id) == []


async def test_failed_batch_is_wrapped_and_rolled_back(db_url):
    account_id = seed_account(database_url=db_url, user_id=USER)
    store = SqlLedgerStore(USER, database_url=db_url)
    bad = _payload("no-such-account")
    with pytest.raises(StoreError, match="insert_transactions failed"):
        await store.insert_transactions([_payload(account_id), bad])
    assert await store.list_account_transactions(account_id) == []


async def test_vendors_round_trip(db_url):
    store = SqlLedgerStore(USER, database_url=db_url)
    assert await store.insert_vendors(["Tesco", "Aldi"]) == 2
    assert sorted(v.name for v in await store.list_vendors()) == ["Aldi", "Tesco"]
    assert await SqlLedgerStore("someone-else", database_url=db_url).list_vendors() == []
