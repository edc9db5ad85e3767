"""Centralized loguru configuration for the case hierarchy explorer.

Provides:
- Console and file sinks with rotation
- Standard logging interception for third-party libraries
- Context binding for the record whose hierarchy is being shown

Example:
    >>> from case_hierarchy.logging_config import configure_logging
    >>> configure_logging(level="DEBUG")

    >>> with record_context_manager("500000000000001AAA"):
    ...     logger.info("Loading hierarchy")  # Log includes the record id
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Optional, Union

from loguru import logger

# Record whose hierarchy is being displayed (async-safe)
record_context: ContextVar[Optional[str]] = ContextVar("record_id", default=None)

VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class InterceptHandler(logging.Handler):
    """Redirect standard logging records to loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the log originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _context_filter(record) -> bool:
    record["extra"].setdefault("record_id", record_context.get() or "none")
    return True


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_format: str = "default",
    rotation: str = "10 MB",
    retention: str = "14 days",
    intercept_standard_logging: bool = True,
    colorize: bool = True,
    serialize: bool = False,
) -> None:
    """Configure loguru sinks.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (None = console only)
        console_format: Format preset for console ("default", "detailed", "minimal")
        rotation: When to rotate log files (size or time)
        retention: How long to keep old logs
        intercept_standard_logging: Capture logs from the standard logging module
        colorize: Enable colored output in console
        serialize: Write JSON lines to the log file

    Raises:
        ValueError: If the level is not a loguru level name
    """
    level_upper = level.upper()
    if level_upper not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {VALID_LEVELS}")
    level = level_upper

    logger.remove()

    console_formats = {
        "minimal": "<level>{level: <8}</level> | <level>{message}</level>",
        "default": (
            "<green>{time:HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level>"
        ),
        "detailed": (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "{extra[record_id]:<18} | "
            "<level>{message}</level>"
        ),
    }

    logger.add(
        sys.stderr,
        level=level,
        format=console_formats.get(console_format, console_formats["default"]),
        colorize=colorize,
        filter=_context_filter,
    )

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "case_hierarchy_{time:YYYY-MM-DD}.log"

        if serialize:
            logger.add(
                log_file,
                level=level,
                rotation=rotation,
                retention=retention,
                serialize=True,
                filter=_context_filter,
            )
        else:
            logger.add(
                log_file,
                level=level,
                format=(
                    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                    "{name}:{function}:{line} | {extra[record_id]} | {message}"
                ),
                rotation=rotation,
                retention=retention,
                filter=_context_filter,
            )

    if intercept_standard_logging:
        logging.root.handlers = [InterceptHandler()]
        logging.root.setLevel(level)


def configure_from_config(config: "LoggingConfig") -> None:
    """Initialize logging from a LoggingConfig object."""
    configure_logging(
        level=config.level,
        log_dir=config.get_log_path(),
        console_format=config.console_format,
        rotation=config.rotation,
        retention=config.retention,
        intercept_standard_logging=config.intercept_standard_logging,
        colorize=config.colorize,
        serialize=config.serialize,
    )


@contextmanager
def record_context_manager(record_id: Optional[str]):
    """Bind ``record_id`` to every log line emitted inside the block."""
    token = record_context.set(record_id)
    try:
        yield
    finally:
        record_context.reset(token)


__all__ = [
    "configure_logging",
    "configure_from_config",
    "record_context_manager",
    "record_context",
    "InterceptHandler",
]
