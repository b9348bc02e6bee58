"""Apply the Alembic migrations that ship with the ``db`` package.

Usage
-----
from db.migrate import upgrade

upgrade(database_url="sqlite+pysqlite:///ledger.db")
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from .client import _database_url

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def alembic_config(*, database_url: str | None = None) -> Config:
    """Build an in-memory Alembic config pointing at the packaged migrations."""

    url = _database_url(database_url)
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats "%" specially (URL-encoded passwords).
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def upgrade(*, database_url: str | None = None, revision: str = "head") -> None:
    """Migrate the database at ``database_url`` (or ``DATABASE_URL``) to ``revision``."""

    command.upgrade(alembic_config(database_url=database_url), revision)


__all__ = ["MIGRATIONS_DIR", "alembic_config", "upgrade"]
