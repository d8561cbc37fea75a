from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Application logging: one ``LABEL message`` line per record.

All module loggers (``logging.getLogger(__name__)``) sit below the
``report_intake`` logger and write through its single stdout handler:

    INFO tabular file selected name=report.xlsx sheets=1
    WARN sheet=1 cell=C3 column=purpose_id Invalid purpose ID - Allowed: ...
    SUMMARY sheets=1 errors=1 empty_fields=no fractions=no purpose_ids=yes value_premises=no

SUMMARY is a custom level (25) so that the summary line survives ``INFO``
filtering but not a ``WARNING`` threshold.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "enable_debug",
    "get_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
]

LOGGER_NAME = "report_intake"
SUMMARY_LEVEL = 25

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``; a logged exception follows on the next lines."""

    def format(self, record: logging.LogRecord) -> str:
        label = _LABELS.get(record.levelno, record.levelname)
        line = f"{label} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Configure the application logger once and return it.

    Later calls return the already configured logger; call reset_logging()
    first to rebuild the handler (tests capture stdout per test).
    """
    global _logger
    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    # the root logger may have its own handlers (pytest, embedding apps)
    logger.propagate = False

    _logger = logger
    return logger


def enable_debug() -> logging.Logger:
    """Lower the application logger (and its handlers) to DEBUG."""
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")
    return logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger; the next setup_logging() rebuilds it."""
    global _logger
    _logger = None
