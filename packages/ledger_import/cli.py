# ruff: noqa: I001
"""CLI for the ``ledger_import`` package.

Command handlers (``cmd_detect``, ``cmd_import``, ``cmd_init_db``) return process exit codes and
print ``Error: ...`` to stderr on failure; the Typer commands wrap them.
Environment variables (notably ``DATABASE_URL``) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in ``ledger_import.workflows``.
"""

from __future__ import annotations

import asyncio
import csv
import sys
from pathlib import Path
from typing import Annotated
from collections.abc import Sequence

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .errors import LedgerImportError
from .logging_setup import configure_logging
from .models import ACCOUNT_TYPES, ColumnMapping, CommitResult, SkippedRow

console = Console()
err_console = Console(stderr=True)


# ---- Small module-level helpers used by CLI commands -------------------------


def _parse_pairs(values: Sequence[str] | None, *, option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a dict (last one wins)."""

    out: dict[str, str] = {}
    for raw in values or ():
        key, sep, value = raw.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            raise ValueError(f"{option} expects CSV_CATEGORY=VALUE, got {raw!r}")
        out[key] = value
    return out


def _mapping_table(headers: Sequence[str], mapping: ColumnMapping) -> Table:
    table = Table(title="Column mapping")
    table.add_column("Role")
    table.add_column("Column")
    for role in ("date", "vendor", "amount", "inflow", "outflow", "description", "category"):
        idx = getattr(mapping, role)
        if idx is None:
            label = "-"
        elif idx < len(headers):
            label = f"{idx}: {headers[idx]}"
        else:
            label = str(idx)
        table.add_row(role, label)
    return table


def _skipped_table(skipped: Sequence[SkippedRow]) -> Table:
    table = Table(title=f"Skipped rows ({len(skipped)})")
    table.add_column("Row", justify="right")
    table.add_column("Reason")
    for s in skipped:
        # Data rows are 0-based; +2 gives the line number with the header.
        table.add_row(str(s.row_index + 2), s.reason.value)
    return table


def _result_table(result: CommitResult) -> Table:
    table = Table(title="Import result")
    table.add_column("Field")
    table.add_column("Value", justify="right")
    table.add_row("account", result.account_id or "-")
    table.add_row("inserted", f"{result.inserted}/{result.total}")
    table.add_row("duplicates skipped", str(result.skipped_duplicates))
    table.add_row("groups created", str(len(result.created_group_ids)))
    table.add_row("categories resolved", str(len(result.created_category_ids)))
    table.add_row("vendors registered", str(result.vendors_registered))
    return table


def _error(message: str) -> int:
    err_console.print(f"Error: {message}", markup=False, highlight=False)
    return 1


# ---- Command handlers ---------------------------------------------------------


def cmd_detect(csv_path: str) -> int:
    """Print the detected format, mapping, and build outcome for a CSV file."""

    from .workflows import inspect_csv

    try:
        report = inspect_csv(csv_path)
    except FileNotFoundError:
        return _error(f"File not found: {csv_path}")
    except PermissionError:
        return _error(f"Permission denied: {csv_path}")
    except csv.Error as e:
        return _error(f"Failed to parse CSV: {e}")
    except LedgerImportError as e:
        return _error(str(e))

    d = report.detection
    console.print(
        f"Format: [bold]{d.format.value}[/bold] via {d.detector} "
        f"(confidence {d.confidence:.2f}); date format {report.date_format.value}"
    )
    console.print(_mapping_table(report.headers, d.mapping))
    console.print(f"Candidates: {len(report.build.transactions)}")
    if report.build.skipped:
        console.print(_skipped_table(report.build.skipped))
    return 0


def cmd_import(
    csv_path: str,
    *,
    user_id: str,
    account_id: str | None = None,
    new_account: str | None = None,
    account_type: str = "checking",
    merge: Sequence[str] | None = None,
    create: Sequence[str] | None = None,
    include_duplicates: bool = False,
    database_url: str | None = None,
) -> int:
    """Import a CSV file into the ledger and print the commit outcome."""

    from .persistence import SqlLedgerStore
    from .workflows import import_csv

    if (account_id is None) == (new_account is None):
        return _error("provide exactly one of --account-id or --new-account")
    if account_type not in ACCOUNT_TYPES:
        allowed = ", ".join(ACCOUNT_TYPES)
        return _error(f"unsupported account type {account_type!r}; allowed: {allowed}")
    try:
        merges = _parse_pairs(merge, option="--merge")
        creates = _parse_pairs(create, option="--create")
        store = SqlLedgerStore(user_id, database_url=database_url)
        report = asyncio.run(
            import_csv(
                csv_path,
                store,
                account_id=account_id,
                new_account=new_account,
                account_type=account_type,
                merges=merges,
                creates=creates,
                include_duplicates=include_duplicates,
                on_progress=lambda msg: print(msg, file=sys.stderr),
            )
        )
    except FileNotFoundError:
        return _error(f"File not found: {csv_path}")
    except PermissionError:
        return _error(f"Permission denied: {csv_path}")
    except csv.Error as e:
        return _error(f"Failed to parse CSV: {e}")
    except (LedgerImportError, ValueError, RuntimeError) as e:
        return _error(str(e))

    console.print(_result_table(report.result))
    if report.skipped:
        console.print(_skipped_table(report.skipped))
    if not report.result.ok:
        return _error(report.result.error or "import failed")
    return 0


def cmd_init_db(*, database_url: str | None = None) -> int:
    """Create or upgrade the ledger schema by running the packaged migrations."""

    from sqlalchemy.exc import SQLAlchemyError

    from db.migrate import upgrade

    try:
        upgrade(database_url=database_url)
    except (RuntimeError, SQLAlchemyError) as e:
        return _error(str(e))
    console.print("Ledger schema is up to date.")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank-exported CSV files into the personal ledger. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a bank-exported CSV file",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
    readable=True,
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    ..., "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("detect")
def detect_cmd(csv_path: Annotated[Path, CSV_PATH_OPTION]) -> None:
    """Show how a CSV file would be read, without importing it."""

    raise typer.Exit(cmd_detect(str(csv_path)))


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    user_id: str = typer.Option(..., "--user-id", help="Ledger owner to import for."),
    account_id: str | None = typer.Option(
        None, "--account-id", help="Existing account to import into."
    ),
    new_account: str | None = typer.Option(
        None, "--new-account", help="Create an account with this name and import into it."
    ),
    account_type: str = typer.Option(
        "checking", "--account-type", help=f"Type of --new-account ({', '.join(ACCOUNT_TYPES)})."
    ),
    merge: list[str] | None = typer.Option(
        None, "--merge", help="CSV_CATEGORY=CATEGORY_ID; repeatable."
    ),
    create: list[str] | None = typer.Option(
        None, "--create", help="CSV_CATEGORY=GROUP_NAME; repeatable."
    ),
    include_duplicates: bool = typer.Option(
        False, "--include-duplicates", help="Import rows already present in the account."
    ),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import a CSV file into an account."""

    raise typer.Exit(
        cmd_import(
            str(csv_path),
            user_id=user_id,
            account_id=account_id,
            new_account=new_account,
            account_type=account_type,
            merge=merge,
            create=create,
            include_duplicates=include_duplicates,
            database_url=database_url,
        )
    )


@app.command("init-db")
def init_db_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Create the ledger tables (or apply pending migrations)."""

    raise typer.Exit(cmd_init_db(database_url=database_url))

@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (defaults to LEDGER_IMPORT_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
