"""
Logging setup for RepoPush.

A single named logger is shared across the package so that callers can
tune verbosity in one place.
"""

import logging
import sys


LOGGER_NAME = "RepoPush"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_logger() -> logging.Logger:
    _logger = logging.getLogger(LOGGER_NAME)
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)
    return _logger


logger = _build_logger()


def set_verbose(verbose: bool) -> None:
    """Switch the package logger between DEBUG and INFO."""

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


__all__ = ["logger", "set_verbose", "LOGGER_NAME"]
