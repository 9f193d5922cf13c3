"""Tests for bookcheck.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from bookcheck.logging import configure_logging, get_logger


def test_get_logger_nests_under_package() -> None:
    assert get_logger().name == "bookcheck"
    assert get_logger("checker").name == "bookcheck.checker"


def test_configure_logging_resets_handlers_and_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "bookcheck.log"

    configure_logging(verbose=False)
    logger = configure_logging(verbose=True, log_file=log_file)
    get_logger("checker").debug("Found %d links", 3)
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "Found 3 links" in log_file.read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logging_writes_to_stderr(capsys) -> None:
    logger = configure_logging()
    get_logger("web").info("Fetching %d distinct URLs", 2)

    captured = capsys.readouterr()
    assert "[bookcheck] INFO Fetching 2 distinct URLs" in captured.err
    assert captured.out == ""
    assert len(logger.handlers) == 1

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
