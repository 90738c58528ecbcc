"""Logging configuration for the gateway."""

import logging
import sys

LOGGER_NAME = "chatrelay"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Set up logging with proper handlers and formatters.

    Args:
        debug: Emit DEBUG records (session lifecycle, upstream requests)
            instead of INFO and above.

    Returns:
        The configured ``chatrelay`` logger.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    # Set logger to propagate to root logger to ensure proper flushing
    logger.propagate = True

    return logger

