"""Structured logging configuration for newestcheck."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_PREFIX = "verify_newest"


def log_file_path(log_dir: Path, now: datetime | None = None) -> Path:
    """Build a timestamped log file path inside ``log_dir``."""
    now = now or datetime.now()
    return log_dir / f"{LOG_FILE_PREFIX}_{now:%Y-%m-%d_%H-%M-%S}.log"


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Path | None = None,
) -> None:
    """Configure structured logging for the application.

    Output always goes to stdout. When ``log_file`` is given it is written
    there as well, and its directory is created if missing.
    """
    level = getattr(logging, log_level.upper())

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=handlers,
        force=True,
    )

    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Note: Returns Any because structlog.get_logger() returns a dynamically
    configured logger type that varies based on setup_logging() configuration.
    """
    return structlog.get_logger(name)
