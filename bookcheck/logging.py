"""Progress and diagnostic output for link checks.

Log records go to stderr so the report printed on stdout stays clean when the
checker runs inside an mdBook build.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "bookcheck"
_CONSOLE_FORMAT = "[bookcheck] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one component, e.g. ``get_logger("web")`` -> ``bookcheck.web``."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def _attach(logger: logging.Logger, handler: logging.Handler, fmt: str) -> None:
    handler.setLevel(logger.level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route bookcheck records to stderr, and to ``log_file`` when one is given.

    ``verbose`` lowers the threshold to DEBUG, which lists every link found and
    every URL fetched. Calling this again replaces the previous handlers.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(sys.stderr), _CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), _FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
