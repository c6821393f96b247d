from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Console logging for the ``leadingest`` package.

One stream handler on the ``leadingest`` logger prints ``LABEL message``
lines, LABEL being INFO | WARN | ERROR | SUMMARY (DEBUG with ``--debug``).
Modules log through ``logging.getLogger(__name__)`` and reach that handler as
children of the package logger; nothing propagates to the root logger.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "leadingest"
SUMMARY_LEVEL = 25  # between INFO and WARNING

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_handler: logging.Handler | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``, with any attached traceback on the following lines."""

    def format(self, record: logging.LogRecord) -> str:
        text = f"{_LABELS.get(record.levelno, record.levelname)} {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def setup_logging(debug: bool = False, stream: TextIO | None = None) -> logging.Logger:
    """Install the console handler once and return the package logger.

    Later calls reuse the installed handler; ``debug=True`` lowers the level
    to DEBUG on an existing setup as well.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        for h in logger.handlers[:]:
            logger.removeHandler(h)
        _handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        _handler.setFormatter(LabeledFormatter())
        logger.addHandler(_handler)
        logger.propagate = False
        logger.setLevel(logging.INFO)
        _handler.setLevel(logging.INFO)
    if debug:
        logger.setLevel(logging.DEBUG)
        _handler.setLevel(logging.DEBUG)
    return logger


def log_summary(message: str) -> None:
    setup_logging().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the installed handler so the next setup binds the current stdout (tests)."""
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = None
