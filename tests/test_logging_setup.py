"""Tests for gateway logging setup."""

import logging

from chatrelay.logging import LOG_FORMAT, LOGGER_NAME, setup_logging


def test_setup_logging_levels():
    logger = setup_logging(debug=False)
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO

    logger = setup_logging(debug=True)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.DEBUG
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_module_loggers_are_children():
    setup_logging(debug=False)
    child = logging.getLogger("chatrelay.orchestrator")
    assert child.getEffectiveLevel() == logging.INFO
