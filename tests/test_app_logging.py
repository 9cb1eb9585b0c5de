"""Tests for logging configuration."""

import logging

from gainchef.app_logging import QUIET_LOGGERS, configure_logging


def test_configure_logging_keeps_single_handler() -> None:
    logger = logging.getLogger("gainchef")
    logger.handlers.clear()

    configure_logging()
    configure_logging("debug")

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_configure_logging_quiets_http_clients() -> None:
    configure_logging("warning")

    assert logging.getLogger("gainchef").level == logging.WARNING
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
