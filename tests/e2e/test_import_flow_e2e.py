"""End-to-end: CSV on disk → wizard → commit, against both store adapters."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from ledger_import.models import ExistingAccount, ExistingCategory
from ledger_import.persistence import SqlLedgerStore
from ledger_import.workflows import import_csv, inspect_csv
from tests.helpers.db import bootstrap_sqlite_db, seed_account, seed_category, seed_transaction
from tests.helpers.memory_store import MemoryStore

pytestmark = pytest.mark.e2e

CSV = (
    "Date,Payee,Category,Memo,Outflow,Inflow\n"
    "2024-01-01,Starting Balance,,,,1000.00\n"
    "2024-01-05,Tesco,Groceries,weekly shop,42.00,\n"
    "2024-01-06,Aldi,Groceries,,18.20,\n"
)


@pytest.fixture()
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "ynab.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def test_inspect_reports_build_without_a_ledger(csv_path):
    report = inspect_csv(csv_path)
    assert report.detection.detector == "ynab"
    assert report.date_format.value == "YYYY-MM-DD"
    assert len(report.build.transactions) == 3
    assert report.build.transactions[0].is_starting_balance


async def test_three_row_import_with_duplicate_and_merge(csv_path):
    store = MemoryStore(
        accounts=[ExistingAccount(id="acc-main", name="Main", type="checking")],
        categories=[ExistingCategory(id="cat-food", name="Food", group_id="grp-home")],
    )
    store.add_transaction("acc-main", "2024-01-05", "TESCO", "-42.00")
    messages: list[str] = []
    invalidated: list[bool] = []

    report = await import_csv(
        csv_path,
        store,
        account_id="acc-main",
        merges={"Groceries": "cat-food"},
        on_progress=messages.append,
        on_invalidate=lambda: invalidated.append(True),
    )

    result = report.result
    assert result.ok, result.error
    assert (result.inserted, result.total, result.skipped_duplicates) == (2, 2, 1)
    written = store.transactions[1:]
    assert [(t["vendor"], t["type"], t.get("category_id")) for t in written] == [
        ("Starting Balance", "starting", None),
        ("Aldi", "payment", "cat-food"),
    ]
    assert written[1]["amount"] == Decimal("-18.20")
    assert report.summary.duplicates == 1
    assert invalidated == [True]
    assert messages[-1] == "Inserted 2 transaction(s)."
    assert [v.name for v in store.vendors] == ["Aldi"]


async def test_merged_category_reaches_every_imported_row(tmp_path):
    path = tmp_path / "ynab.csv"
    shared = CSV.replace("Starting Balance,,", "Starting Balance,Groceries,")
    path.write_text(shared, encoding="utf-8")
    store = MemoryStore(
        accounts=[ExistingAccount(id="acc-main", name="Main", type="checking")],
        categories=[ExistingCategory(id="cat-food", name="Food", group_id="grp-home")],
    )
    store.add_transaction("acc-main", "2024-01-05", "Tesco", "-42.00")

    report = await import_csv(
        path, store, account_id="acc-main", merges={"Groceries": "cat-food"}
    )

    assert report.result.inserted == 2
    written = store.transactions[1:]
    assert [(t["vendor"], t.get("category_id")) for t in written] == [
        ("Starting Balance", "cat-food"),
        ("Aldi", "cat-food"),
    ]
    assert "create_category" not in store.calls


async def test_auto_merge_and_include_duplicates(csv_path):
    store = MemoryStore(
        accounts=[ExistingAccount(id="acc-main", name="Main", type="checking")],
        categories=[ExistingCategory(id="cat-g", name="groceries", group_id="grp-home")],
    )
    store.add_transaction("acc-main", "2024-01-05", "Tesco", "-42.00")

    report = await import_csv(csv_path, store, account_id="acc-main", include_duplicates=True)

    assert report.result.inserted == 3
    assert [t.get("category_id") for t in store.transactions[1:]] == [None, "cat-g", "cat-g"]


async def test_arguments_are_validated_before_any_write(csv_path):
    store = MemoryStore()
    with pytest.raises(ValueError, match="exactly one"):
        await import_csv(csv_path, store)
    with pytest.raises(ValueError, match="both merged and created"):
        await import_csv(
            csv_path,
            store,
            new_account="Joint",
            merges={"Groceries": "c1"},
            creates={"Groceries": "Imported"},
        )
    with pytest.raises(ValueError, match="Unknown category id"):
        await import_csv(csv_path, store, new_account="Joint", merges={"Groceries": "c-missing"})
    assert store.transactions == []
    assert "create_account" not in store.calls


async def test_sqlite_import_then_reimport_skips_everything(csv_path, tmp_path):
    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    account_id = seed_account(database_url=url, user_id="u1")
    cat_id, _ = seed_category(database_url=url, user_id="u1", name="Food")
    seed_transaction(
        database_url=url,
        user_id="u1",
        account_id=account_id,
        on="2024-01-05",
        vendor="Tesco",
        amount="-42.00",
    )
    store = SqlLedgerStore("u1", database_url=url)

    first = await import_csv(
        csv_path,
        store,
        account_id=account_id,
        creates={"Groceries": "Imported"},
    )
    assert first.result.ok, first.result.error
    assert first.result.inserted == 2
    categories = {c.name: c for c in await store.list_categories()}
    assert categories["Groceries"].group_name == "Imported"
    assert categories["Food"].id == cat_id

    existing = await store.list_account_transactions(account_id)
    assert sorted(e.vendor for e in existing) == ["Aldi", "Starting Balance", "Tesco"]

    # Starting-balance rows are never treated as duplicates, so only it is re-sent.
    second = await import_csv(csv_path, store, account_id=account_id)
    assert second.result.ok
    assert (second.result.inserted, second.result.skipped_duplicates) == (1, 2)
