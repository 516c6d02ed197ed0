"""Structured logging utilities for SecureCoda.

This module provides async-safe structured logging using structlog.
Every log line emitted while a scan is running carries that scan's run number,
so interleaved scheduled/manual activity can be told apart.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

# Context variable for scan-run tracking
scan_run_var: ContextVar[Optional[int]] = ContextVar("scan_run", default=None)


def add_scan_run(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add scan_run to log context if a scan is in progress."""
    scan_run = scan_run_var.get()
    if scan_run is not None:
        event_dict["scan_run"] = scan_run
    return event_dict


def add_timestamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add epoch timestamp to log entries."""
    event_dict["timestamp"] = time.time()
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format. If False, use console format.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_scan_run,
        add_timestamp,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "securecoda") -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class PerformanceLogger:
    """Context manager for tracking operation duration.

    Logs ``<operation> completed`` at INFO (or WARNING when the operation took
    longer than ``warn_after_ms``) and ``<operation> failed`` at ERROR when the
    block raises. The exception is never suppressed.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        warn_after_ms: float = 60_000.0,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.warn_after_ms = warn_after_ms
        self.start_time: float = 0
        self.end_time: float = 0

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=round(duration_ms, 1),
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        else:
            log_method = (
                self.logger.warning if duration_ms > self.warn_after_ms else self.logger.info
            )
            log_method(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=round(duration_ms, 1),
            )

    @property
    def duration_ms(self) -> float:
        """Get duration in milliseconds."""
        if self.end_time == 0:
            return (time.perf_counter() - self.start_time) * 1000
        return (self.end_time - self.start_time) * 1000


def set_scan_run(scan_run: int) -> None:
    """Set the scan run number in context for all subsequent logs."""
    scan_run_var.set(scan_run)


def clear_scan_run() -> None:
    """Clear the scan run number from context."""
    scan_run_var.set(None)


# Initialize logging with sensible defaults
# This will be reconfigured by main.py based on environment
configure_logging()
