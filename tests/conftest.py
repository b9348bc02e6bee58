"""Pytest configuration for test isolation.

The pipeline reads its tunables (``LEDGER_IMPORT_*``), its log level, and the
database location (``DATABASE_URL``) from the environment, and ``db.client``
caches one engine per URL for the life of the process. Both would leak state
between tests, so every test starts from a clean environment and ends with the
engine cache disposed.

The CLI callback configures the ``ledger_import`` logger (a stream handler,
``propagate=False``). That is process-wide too, so each test starts with an
unconfigured package logger and the previous setup is put back afterwards.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest

from db.client import dispose_engines
from ledger_import import logging_setup

_ENV_PREFIXES = ("LEDGER_IMPORT_",)
_ENV_NAMES = ("DATABASE_URL",)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop pipeline-related env vars so defaults apply unless a test sets them."""

    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()


@pytest.fixture(autouse=True)
def _isolate_package_logger() -> Iterator[logging.Logger]:
    """Run every test against an unconfigured ``ledger_import`` logger."""

    logger = logging.getLogger(logging_setup.PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate, logging_setup._handler)

    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logging_setup._handler = None
    yield logger

    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    logging_setup._handler = saved[3]
