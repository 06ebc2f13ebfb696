"""
Logging configuration for the glacier forecast gateway.

Console logging for the request path, optional file logging for the
long-running server, and a timing context for upstream fetches.
"""

import logging
import os
import time
from pathlib import Path
from typing import Iterable, Optional

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logger(
    name: str = "glacier_forecast",
    log_file: Optional[str] = None,
    log_level: Optional[str] = None,
    attach_to: Iterable[str] = ()
) -> logging.Logger:
    """
    Set up application logger with a console handler and an optional file handler.

    Args:
        name: Logger name
        log_file: Path to log file. If None, uses LOG_FILE env var; no file
                  handler is installed when neither is set
        log_level: Logging level name. If None, uses LOG_LEVEL env var or INFO
        attach_to: Names of other loggers (e.g. uvicorn's) that should share
                   the same handlers

    Returns:
        Configured logger instance
    """
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or os.getenv("LOG_FILE")

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Rebuilding the app (tests, reload) must not stack handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    logger.propagate = False

    for other_name in attach_to:
        other = logging.getLogger(other_name)
        other.handlers = list(logger.handlers)
        other.setLevel(level)
        other.propagate = False

    return logger


class LoggerContext:
    """Context manager that logs the start, duration and failure of an operation."""

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.INFO
    ):
        """
        Initialize logger context.

        Args:
            logger: Logger instance
            operation: Name of the operation being logged
            level: Level used for the start/completion messages
        """
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000.0

        if exc_type is not None:
            self.logger.error(
                f"Failed {self.operation} after {self.elapsed_ms:.0f} ms: {exc_val}"
            )
            # Never swallow the exception
            return False

        self.logger.log(self.level, f"Completed {self.operation} in {self.elapsed_ms:.0f} ms")
        return False
