"""Logging configuration for Afterflow."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Rejected headers, bad rows and failed lookups are logged here as warnings
CORE_LOGGER = "afterflow.core"


class ProblemFilter(logging.Filter):
    """Pass errors from anywhere and warnings from the core package."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True
        return record.name == CORE_LOGGER or record.name.startswith(CORE_LOGGER + ".")


def _rotating_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(logs_dir: Path | None = None, log_level: str = "INFO") -> logging.Logger:
    """
    Set up logging configuration.

    Console output goes to stderr so command output on stdout stays clean.
    With a ``logs_dir``, everything at ``log_level`` lands in ``afterflow.log``
    and import or lookup problems also land in ``errors.log``.

    Args:
        logs_dir: Directory for log files, or None for console only
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if logs_dir:
        logs_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(logs_dir / "afterflow.log", level))

        problem_handler = _rotating_handler(logs_dir / "errors.log", logging.WARNING)
        problem_handler.addFilter(ProblemFilter())
        root_logger.addHandler(problem_handler)

    # Request lines from the metadata fetch are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger
