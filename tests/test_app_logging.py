"""Tests for logging configuration."""

import logging

from nutrition_engine.app_logging import LOG_FORMAT, configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("nutrition_engine")
    logger.handlers.clear()

    try:
        configure_logging()
        first_count = len(logger.handlers)

        configured = configure_logging(debug=True)
        second_count = len(logger.handlers)

        assert configured is logger
        assert first_count == 1
        assert second_count == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT
    finally:
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
