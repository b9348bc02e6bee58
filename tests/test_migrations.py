from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from db import metadata
from db.migrate import upgrade
from ledger_import.cli import app
from ledger_import.models import LedgerTransactionPayload, NewAccountDraft, TransactionType
from ledger_import.persistence import SqlLedgerStore

runner = CliRunner()


@pytest.fixture()
def fresh_url(tmp_path: Path) -> str:
    return f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}"


def test_migrations_build_the_model_schema(fresh_url):
    upgrade(database_url=fresh_url)

    engine = create_engine(fresh_url)
    try:
        insp = inspect(engine)
        tables = set(insp.get_table_names()) - {"alembic_version"}
        assert tables == set(metadata.tables)
        for name, table in metadata.tables.items():
            assert {c["name"] for c in insp.get_columns(name)} == set(table.columns.keys())
            assert {i["name"] for i in insp.get_indexes(name)} == {i.name for i in table.indexes}
    finally:
        engine.dispose()


def test_upgrade_twice_is_a_no_op(fresh_url):
    upgrade(database_url=fresh_url)
    upgrade(database_url=fresh_url)


async def test_store_works_on_a_migrated_database(fresh_url):
    upgrade(database_url=fresh_url)
    store = SqlLedgerStore("u1", database_url=fresh_url)
    account = await store.create_account(NewAccountDraft("Current", "checking"))
    written = await store.insert_transactions(
        [
            LedgerTransactionPayload(
                amount=Decimal("-4.50"),
                date="2024-01-05",
                vendor="Pret",
                type=TransactionType.PAYMENT,
                account_id=account.id,
                user_id="u1",
            )
        ]
    )
    assert written == 1
    assert [t.vendor for t in await store.list_account_transactions(account.id)] == ["Pret"]


def test_init_db_command_prepares_a_fresh_database(fresh_url, tmp_path):
    result = runner.invoke(app, ["init-db", "--database-url", fresh_url])
    assert result.exit_code == 0, result.output
    assert "Ledger schema is up to date." in result.output

    csv_path = tmp_path / "statement.csv"
    csv_path.write_text("Date,Payee,Amount\n2024-01-05,Pret,-4.50\n", encoding="utf-8")
    result = runner.invoke(
        app,
        [
            "import",
            "--csv-path",
            str(csv_path),
            "--user-id",
            "u1",
            "--new-account",
            "Current",
            "--database-url",
            fresh_url,
        ],
    )
    assert result.exit_code == 0, result.output


def test_init_db_without_a_database_url(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 1
    assert "DATABASE_URL is not set" in result.output
