"""
pullcsv structured logging.

structlog renders onto stdlib handlers so that records from rsync
supervision, APScheduler and our own jobs share one stream. Console output is
human-readable by default and switches to one JSON object per line for log
collectors.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from pullcsv.core.config import LoggingConfig


def build_processors(json_format: bool, colors: bool = False) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))
    return processors


def build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.console_enabled:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(config.level)
        handlers.append(console)
    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        log_file = config.log_directory / f"pullcsv_{date.today():%Y%m%d}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Route structlog through the stdlib root logger with the configured handlers."""
    logging.basicConfig(level=logging.DEBUG, handlers=build_handlers(config), format="%(message)s", force=True)
    # Skipped singleton firings are logged at WARNING.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    structlog.configure(
        processors=build_processors(config.json_format, colors=sys.stderr.isatty()),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "pullcsv")


@contextmanager
def log_operation(operation: str, logger: structlog.stdlib.BoundLogger, **context: Any) -> Iterator[None]:
    """Log ``Start <operation>`` and ``Stop <operation>`` around a block, with its duration."""
    logger.info(f"Start {operation}", **context)
    started = time.monotonic()
    try:
        yield
    except Exception as e:
        logger.error(
            f"Failed {operation}",
            duration_seconds=round(time.monotonic() - started, 3),
            error=str(e),
            **context,
        )
        raise
    logger.info(f"Stop {operation}", duration_seconds=round(time.monotonic() - started, 3), **context)
