"""
ImageForge structured logging.

Provides structured output for the console and a dated log file, so that
every state detected before an abort is on record.
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from imageforge.core.config import LoggingConfig


_configured = False


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog over stdlib logging, once per process."""
    global _configured

    if _configured:
        return

    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, config.level))
        handlers.append(console_handler)

    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        log_file = config.log_directory / f"imageforge_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, format="%(message)s")

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if config.json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "imageforge")


class OperationLogger:
    """Brackets a build or transfer with started/completed/failed events.

    The exception is logged and then propagated unchanged.
    """

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ) -> None:
        self.operation = operation
        self.log = (logger or get_logger()).bind(operation=operation, **context)
        self._started = 0.0

    def __enter__(self) -> OperationLogger:
        self._started = time.monotonic()
        self.log.info(f"Starting {self.operation}")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        elapsed = round(time.monotonic() - self._started, 3)
        if exc_type is None:
            self.log.info(f"Completed {self.operation}", duration_seconds=elapsed)
        else:
            self.log.error(
                f"Failed {self.operation}",
                duration_seconds=elapsed,
                error_type=exc_type.__name__,
                error=str(exc_val),
            )
