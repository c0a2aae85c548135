"""Logging configuration using loguru.

Stdlib logging (httpx, asyncio) is bridged into loguru so every record has
the same format.  While the dashboard is on screen the terminal is not ours
to write to, so the CLI normally sends records to a file.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")
"""Third-party loggers capped at WARNING."""


class _InterceptHandler(logging.Handler):
    """Re-emit stdlib records through loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Make loguru the only logging sink.

    Call once at process startup.  With *log_file*, records are appended to
    that file (rotated at 10 MB, written from a background thread);
    otherwise they go to stderr.
    """
    level = level.upper()

    logger.remove()
    if log_file:
        logger.add(log_file, level=level, format=LOG_FORMAT, rotation="10 MB", enqueue=True, colorize=False)
    else:
        logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={}, sink={})", level, log_file or "stderr")
