#!/usr/bin/env python3
# quiver/ui/static/logging.py
from __future__ import annotations

"""
Logger setup for the diagnostic channel.

Warnings raised while loading libraries (name conflicts, failed loads, alias
collisions) are logged under the 'quiver' logger and end up on stderr here.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from ..utils import ANSI, PRINT_MUTEX, enable_windows_vt, strip_ansi


class ColorizingStreamHandler(logging.StreamHandler):
    """StreamHandler that colors records by level when the console supports ANSI."""

    _LEVEL_COLORS = {
        logging.DEBUG: ANSI["bright_black"],
        logging.INFO: "",
        logging.WARNING: ANSI["yellow"],
        logging.ERROR: ANSI["red"],
        logging.CRITICAL: ANSI["magenta"],
    }

    def __init__(self, stream=None) -> None:
        super().__init__(stream)
        self._use_ansi = enable_windows_vt() and bool(getattr(self.stream, "isatty", lambda: False)())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            color = self._LEVEL_COLORS.get(record.levelno, "") if self._use_ansi else ""
            if color:
                message = f"{color}{message}{ANSI['reset']}"
            else:
                message = strip_ansi(message)
            with PRINT_MUTEX:
                self.stream.write(message + self.terminator)
                self.flush()
        except Exception:
            self.handleError(record)


class PlainFormatter(logging.Formatter):
    """Formatter that strips ANSI (good for log files)."""

    def format(self, record: logging.LogRecord) -> str:
        return strip_ansi(super().format(record))


def init_logger(
    name: str = "quiver",
    level: int | str = logging.INFO,
    logfile: Optional[str] = None,
) -> logging.Logger:
    """
    Initialize the framework logger.

    Console: colored when possible, plain otherwise.
    File (optional): rotating, plain text, UTF-8.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, ColorizingStreamHandler) for h in logger.handlers):
        console_handler = ColorizingStreamHandler(stream=sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if logfile and not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        file_handler = RotatingFileHandler(
            logfile, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            PlainFormatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
