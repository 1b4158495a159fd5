"""
Structured logging for cronstore.

Wraps the standard logging module with JSON-rendered context and counters
for store operations, lock outcomes and skipped rows. As a library the
default is silent (NullHandler); hosts opt in to console or file output.
"""

import copy
import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Logger with optional console and file outputs.
    Tracks metrics for monitoring store health.
    """

    def __init__(
        self,
        name: str = "cronstore",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = False,
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

        # Store calls arrive from many threads at once
        self._lock = threading.Lock()
        self.metrics = {
            "operations": 0,
            "operations_failed": 0,
            "errors_by_type": {},
            "locks_acquired": 0,
            "locks_contended": 0,
            "rows_skipped": 0,
            "operation_counts": {},
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

            log_file = log_dir / f"cronstore_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

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

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if not self.logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def _op_stats(self, operation: str) -> dict:
        return self.metrics["operation_counts"].setdefault(
            operation, {"calls": 0, "failures": 0}
        )

    def record_operation(self, operation: str):
        """Count one call of a store operation."""
        with self._lock:
            self.metrics["operations"] += 1
            self._op_stats(operation)["calls"] += 1

    def record_failure(self, operation: str, error_type: str):
        """Record a failed store operation."""
        with self._lock:
            self.metrics["operations_failed"] += 1
            self._op_stats(operation)["failures"] += 1
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def record_lock(self, acquired: bool):
        """Record a lock attempt outcome."""
        with self._lock:
            if acquired:
                self.metrics["locks_acquired"] += 1
            else:
                self.metrics["locks_contended"] += 1

    def record_skipped_row(self):
        """Record a registry row skipped because it failed to decode."""
        with self._lock:
            self.metrics["rows_skipped"] += 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        with self._lock:
            metrics_copy = copy.deepcopy(self.metrics)
        for operation, stats in metrics_copy["operation_counts"].items():
            if stats["calls"] > 0:
                stats["failure_rate"] = round(stats["failures"] / stats["calls"], 3)
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        total = metrics["operations"]
        failed = metrics["operations_failed"]

        self.info("=== Store Metrics ===")
        self.info(f"Operations: {total} ({failed} failed)")
        self.info(
            f"Locks: {metrics['locks_acquired']} acquired, "
            f"{metrics['locks_contended']} contended"
        )
        if metrics["rows_skipped"]:
            self.info(f"Undecodable job rows skipped: {metrics['rows_skipped']}")

        if metrics["operation_counts"]:
            self.info("Per operation:")
            for operation, stats in sorted(metrics["operation_counts"].items()):
                self.info(f"  {operation}: {stats['calls']} calls, {stats['failures']} failures")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "cronstore",
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
