from __future__ import annotations

import io
import logging
from decimal import Decimal

import pytest
from typer.testing import CliRunner

from ledger_import import logging_setup
from ledger_import.cli import app
from ledger_import.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DUPLICATE_TOLERANCE,
    ImportSettings,
)
from ledger_import.logging_setup import configure_logging, get_logger, resolve_level


def test_defaults():
    settings = ImportSettings()
    assert settings.batch_size == DEFAULT_BATCH_SIZE == 50
    assert settings.duplicate_tolerance == DEFAULT_DUPLICATE_TOLERANCE == Decimal("0.015")
    assert settings.starting_balance_vendor == "Starting Balance"


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_IMPORT_BATCH_SIZE", "10")
    monkeypatch.setenv("LEDGER_IMPORT_DUPLICATE_TOLERANCE", "0.5")
    monkeypatch.setenv("LEDGER_IMPORT_DATE_SAMPLES", "5")
    settings = ImportSettings.from_env()
    assert settings.batch_size == 10
    assert settings.duplicate_tolerance == Decimal("0.5")
    assert settings.date_sample_size == 5


@pytest.mark.parametrize("raw", ["abc", "0", "-3", " "])
def test_from_env_ignores_bad_values(monkeypatch, raw):
    monkeypatch.setenv("LEDGER_IMPORT_BATCH_SIZE", raw)
    monkeypatch.setenv("LEDGER_IMPORT_DUPLICATE_TOLERANCE", raw)
    settings = ImportSettings.from_env()
    assert settings.batch_size == DEFAULT_BATCH_SIZE
    assert settings.duplicate_tolerance == DEFAULT_DUPLICATE_TOLERANCE


def test_invalid_settings_are_rejected():
    with pytest.raises(ValueError, match="batch_size"):
        ImportSettings(batch_size=0)
    with pytest.raises(ValueError, match="duplicate_tolerance"):
        ImportSettings(duplicate_tolerance=Decimal("-1"))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture()
def fresh_logger(_isolate_package_logger) -> logging.Logger:
    """The package logger, reset by the autouse fixture in conftest."""

    return _isolate_package_logger


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, logging.INFO),
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("15", 15),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(value, expected):
    assert resolve_level(value) == expected


def test_resolve_level_reads_env(monkeypatch):
    monkeypatch.setenv("LEDGER_IMPORT_LOG_LEVEL", "ERROR")
    assert resolve_level() == logging.ERROR


def test_cli_run_configures_the_package_logger(fresh_logger, tmp_path):
    # Leaves a configured logger behind; the next tests must still start clean.
    path = tmp_path / "empty.csv"
    path.write_text("\n", encoding="utf-8")
    CliRunner().invoke(app, ["--log-level", "WARNING", "detect", "--csv-path", str(path)])
    assert logging_setup._handler in fresh_logger.handlers
    assert fresh_logger.level == logging.WARNING
    assert not fresh_logger.propagate


def test_package_is_silent_until_configured(fresh_logger):
    get_logger("ledger_import.commit")
    assert any(isinstance(h, logging.NullHandler) for h in fresh_logger.handlers)


def test_configure_logging_attaches_one_handler(fresh_logger):
    stream = io.StringIO()
    configure_logging("INFO", stream=stream)
    configure_logging("DEBUG", stream=stream)
    handlers = [h for h in fresh_logger.handlers if type(h) is logging.StreamHandler]
    assert handlers == [logging_setup._handler]
    assert not any(isinstance(h, logging.NullHandler) for h in fresh_logger.handlers)
    assert not fresh_logger.propagate

    get_logger("ledger_import.wizard").debug("loaded %d row(s)", 3)
    assert "ledger_import.wizard DEBUG loaded 3 row(s)" in stream.getvalue()
