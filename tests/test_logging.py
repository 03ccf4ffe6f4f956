"""
Tests for logging setup.
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from agenda.logging_config import setup_logging


@pytest.fixture
def logger_name():
    name = "agenda-test-logging"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_rotating_file_uses_given_limits(tmp_path, logger_name):
    logger = setup_logging(
        logger_name,
        log_level="debug",
        log_file="agenda.log",
        log_dir=str(tmp_path / "logs"),
        max_bytes=2048,
        backup_count=2,
    )

    (file_handler,) = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert file_handler.maxBytes == 2048
    assert file_handler.backupCount == 2
    assert logger.level == logging.DEBUG

    logger.info("booked")
    file_handler.flush()
    assert "booked" in (tmp_path / "logs" / "agenda.log").read_text(encoding="utf-8")


def test_console_only_and_idempotent(logger_name):
    logger = setup_logging(logger_name)
    assert len(logger.handlers) == 1
    assert not any(isinstance(h, RotatingFileHandler) for h in logger.handlers)

    assert setup_logging(logger_name, log_file="ignored.log") is logger
    assert len(logger.handlers) == 1
