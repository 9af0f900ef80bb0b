"""
Structured logging for the mutual-aid services.

Provides centralized logging with console and file outputs plus counters
for geocoder calls, store writes and failures by operation, so a dispatch
run can report how much work it did.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for a dispatch cycle.
    """

    def __init__(
        self,
        name: str = "mutualaid",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "geocode_calls": 0,
            "cache_hits": 0,
            "store_writes": 0,
            "records_split": 0,
            "clones_failed": 0,
            "errors_by_operation": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"mutualaid_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change the level of the logger and its console handler."""
        self.logger.setLevel(getattr(logging, level.upper()))
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(getattr(logging, level.upper()))

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_geocode_call(self):
        self.metrics["geocode_calls"] += 1

    def record_cache_hit(self):
        self.metrics["cache_hits"] += 1

    def record_store_write(self, count: int = 1):
        self.metrics["store_writes"] += count

    def record_split(self, clones_failed: int = 0):
        """Record a split request and how many of its clones were not created."""
        self.metrics["records_split"] += 1
        self.metrics["clones_failed"] += clones_failed

    def record_failure(self, operation: str):
        """Count a failure against the operation that raised it."""
        errors = self.metrics["errors_by_operation"]
        errors[operation] = errors.get(operation, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of the current metrics."""
        metrics_copy = dict(self.metrics)
        metrics_copy["errors_by_operation"] = dict(self.metrics["errors_by_operation"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        lookups = metrics["geocode_calls"] + metrics["cache_hits"]
        hit_rate = 0
        if lookups > 0:
            hit_rate = round(metrics["cache_hits"] / lookups * 100, 1)

        self.info("=== Dispatch Cycle Metrics ===")
        self.info(f"Geocoder calls: {metrics['geocode_calls']} ({hit_rate}% served from cache)")
        self.info(f"Store writes: {metrics['store_writes']}")
        self.info(f"Requests split: {metrics['records_split']} ({metrics['clones_failed']} clones failed)")

        if metrics["errors_by_operation"]:
            self.info("Failures:")
            for operation, count in metrics["errors_by_operation"].items():
                self.info(f"  {operation}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "mutualaid",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
