"""Console logging for the service."""

from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "prassign-console"
_RESET = "\x1b[0m"
_GREY = "\x1b[90m"

_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_COLORS = {
    logging.DEBUG: "\x1b[37m",
    logging.INFO: "\x1b[34m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31;1m",
}


class _PrefixedFormatter(logging.Formatter):
    """Coloured ``[HH:MM:SS] LEVEL message`` lines."""

    def __init__(self) -> None:
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        color = _COLORS.get(record.levelno, "")
        level = record.levelname[:4]
        line = f"{_GREY}[{timestamp}]{_RESET} {color}{level:>4}{_RESET} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def init_logger(level: str) -> int:
    """Configure the package logger; unknown level names fall back to debug.

    Returns the logging level that was applied.
    """
    resolved = _LEVELS.get(level.strip().lower(), logging.DEBUG)
    logger = logging.getLogger("prassign")
    logger.setLevel(resolved)

    for handler in [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(_PrefixedFormatter())
    logger.addHandler(handler)
    return resolved