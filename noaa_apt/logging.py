"""Logging setup for the APT decoder.

Usage::

    from noaa_apt.logging import get_logger

    logger = get_logger('noaa_apt.dsp')
    logger.info("Resampling")
"""

from __future__ import annotations

import logging
import os
import sys

_ROOT_LOGGER_NAME = 'noaa_apt'
_configured = False


class ConsoleFormatter(logging.Formatter):
    """Human-readable console format with optional color."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__(
            fmt='%(asctime)s %(levelname)-8s %(name)s: %(message)s',
            datefmt='%H:%M:%S',
        )
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self.use_color:
            color = self.LEVEL_COLORS.get(record.levelname)
            if color:
                return f"{color}{message}{self.RESET}"
        return message


def configure_logging(level: str | int | None = None) -> None:
    """Attach a console handler to the package root logger.

    Safe to call more than once, only the level changes after the first
    call.

    Args:
        level: Level name or number. Defaults to ``APT_LOG_LEVEL`` or INFO.
    """
    global _configured

    if level is None:
        level = os.getenv('APT_LOG_LEVEL', 'INFO')
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level)

    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
        root.addHandler(handler)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger, configuring the package logger on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
