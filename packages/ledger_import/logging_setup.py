"""Logging setup for ``ledger_import``.

Library modules obtain loggers through :func:`get_logger` and never attach
handlers themselves. The console script (or a host application) calls
:func:`configure_logging` once; until then the package logger carries only a
``NullHandler`` so importing the pipeline stays silent.

The level comes from the ``level`` argument, else ``LEDGER_IMPORT_LOG_LEVEL``,
else ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ledger_import"
LEVEL_ENV_VAR = "LEDGER_IMPORT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Translate ``level`` (or the env override) into a numeric level.

    Unknown names fall back to ``INFO`` rather than raising; a typo in an
    environment variable should not stop an import.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Repeated calls only adjust the level, so entrypoints may call this freely.
    """

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    numeric = resolve_level(level)

    if _handler is None:
        for existing in list(logger.handlers):
            if isinstance(existing, logging.NullHandler):
                logger.removeHandler(existing)
        _handler = logging.StreamHandler(stream)
        _handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        logger.addHandler(_handler)
        # Keep records out of the root logger to avoid double output.
        logger.propagate = False

    _handler.setLevel(numeric)
    logger.setLevel(numeric)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, keeping the package quiet until configured."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not any(isinstance(h, logging.NullHandler) for h in pkg.handlers):
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
