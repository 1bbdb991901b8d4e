"""
Structured logging for the place approver.

Provides centralized logging with console and file outputs, plus
run metrics (scrape attempts, adjudicator calls, outcomes) for monitoring
how submissions are being resolved.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class _LazyFileHandler(logging.FileHandler):
    """File handler that creates its directory on the first write."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring approval runs.
    """

    def __init__(
        self,
        name: str = "placeapprover",
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
        self.logger.setLevel(logging.DEBUG)
        self.metrics = self._empty_metrics()
        self.configure(level, log_dir, enable_file, enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """Replace the handlers in place. Metrics are kept."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        self.level = getattr(logging, level.upper())
        self._console_handler: Optional[logging.Handler] = None
        self._file_handler: Optional[logging.Handler] = None

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.level)
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)
            self._console_handler = console_handler

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")

            log_file = Path(log_dir) / f"placeapprover_{datetime.now().strftime('%Y%m%d')}.log"
            # delay: nothing is created on disk until the first record
            file_handler = _LazyFileHandler(log_file, encoding='utf-8', delay=True)
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)
            self._file_handler = file_handler

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "submissions_processed": 0,
            "scrape_attempts": 0,
            "scrapes_successful": 0,
            "scrapes_failed": 0,
            "adjudicator_calls": 0,
            "outcomes": {},
            "errors_by_type": {},
        }

    def set_verbose(self, verbose: bool):
        """Quiet the console down to warnings for non-verbose runs."""
        if self._console_handler is not None:
            self._console_handler.setLevel(self.level if verbose else logging.WARNING)

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
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_scrape_attempt(self):
        """Increment the extraction attempt counter."""
        self.metrics["scrape_attempts"] += 1

    def record_scrape_success(self):
        """Record a successful extraction."""
        self.metrics["scrapes_successful"] += 1

    def record_scrape_failure(self, error_type: str):
        """Record a failed extraction attempt."""
        self.metrics["scrapes_failed"] += 1
        self.record_error(error_type)

    def record_adjudicator_call(self):
        """Increment the adjudicator call counter."""
        self.metrics["adjudicator_calls"] += 1

    def record_outcome(self, action: str):
        """Record the final action taken for a submission."""
        self.metrics["submissions_processed"] += 1
        outcomes = self.metrics["outcomes"]
        outcomes[action] = outcomes.get(action, 0) + 1

    def record_error(self, error_type: str):
        """Count an error by type."""
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics, including the extraction success rate."""
        metrics_copy = dict(self.metrics)
        attempts = metrics_copy["scrape_attempts"]
        metrics_copy["scrape_success_rate"] = (
            round(metrics_copy["scrapes_successful"] / attempts, 3) if attempts else 0
        )
        return metrics_copy

    def reset_metrics(self):
        """Clear metrics between runs."""
        self.metrics = self._empty_metrics()

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Approval Run Metrics ===")
        self.info(f"Submissions: {metrics['submissions_processed']}")
        self.info(
            f"Extractions: {metrics['scrapes_successful']}/{metrics['scrape_attempts']} "
            f"({metrics['scrape_success_rate'] * 100:.1f}% success)"
        )
        self.info(f"Adjudicator calls: {metrics['adjudicator_calls']}")

        if metrics["outcomes"]:
            self.info("Outcomes:")
            for action, count in metrics["outcomes"].items():
                self.info(f"  {action}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "placeapprover",
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
