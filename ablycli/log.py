"""Logging setup: one loguru sink on stderr, with SDK logs forwarded into it."""

from __future__ import annotations

import logging
import sys

from loguru import logger


SDK_LOGGER = "ably"


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module so loguru reports it
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def log_level(quiet: bool, debug: bool) -> str:
    if quiet:
        return "WARNING"
    if debug:
        return "DEBUG"
    return "INFO"


def configure_logging(quiet: bool = False, debug: bool = False) -> None:
    """Install the stderr sink and route the SDK's logs through it.

    Quiet mode also turns the SDK down to errors only.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level(quiet, debug),
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {message}",
    )

    sdk = logging.getLogger(SDK_LOGGER)
    sdk.handlers = [InterceptHandler()]
    sdk.propagate = False
    sdk.setLevel(logging.ERROR if quiet else logging.DEBUG)
