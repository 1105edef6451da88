"""Logging configuration helpers."""

import logging

LOGGER_NAME = "nutrition_engine"
LOG_FORMAT = "%(levelname)s: %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a single stream handler to the engine logger.

    Repeated calls only adjust the level, so embedding applications can call
    this from every entry point.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
