"""Logging infrastructure with subject context."""
import logging
import os
import sys
import threading
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def get_app_home() -> Path:
    """Directory holding logs and local databases."""
    home = os.getenv("BUDGETWATCH_HOME")
    if home:
        return Path(home)
    return Path.home() / ".budgetwatch"


class SubjectContextFilter(logging.Filter):
    """Add the monitored subject of the current thread to log records."""

    def __init__(self):
        super().__init__()
        self._local = threading.local()

    @property
    def subject_id(self) -> Optional[str]:
        return getattr(self._local, "subject_id", None)

    @subject_id.setter
    def subject_id(self, value: Optional[str]):
        self._local.subject_id = value

    def filter(self, record):
        """Add subject_id to record."""
        record.subject_id = self.subject_id or "system"
        return True


class BudgetWatchLogger:
    """Centralized logging manager."""

    def __init__(self, log_level: str = "INFO", max_file_size_mb: int = 10, backup_count: int = 30):
        self.log_dir = get_app_home() / "logs"
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / "monitor.log"
        self.subject_filter = SubjectContextFilter()

        self.logger = logging.getLogger("budgetwatch")
        self.logger.setLevel(getattr(logging, log_level.upper()))

        # Remove existing handlers
        self.logger.handlers.clear()

        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [subject:%(subject_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        file_handler.addFilter(self.subject_filter)
        console_handler.addFilter(self.subject_filter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def set_subject_context(self, subject_id: Optional[str]):
        """Set current subject context for logging on this thread."""
        self.subject_filter.subject_id = subject_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[BudgetWatchLogger] = None


def get_logger(log_level: str = "INFO") -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = BudgetWatchLogger(log_level)
    return _logger_instance.get_logger()


def configure_logging(log_level: str, max_file_size_mb: int, backup_count: int) -> logging.Logger:
    """Rebuild the global logger from application settings."""
    global _logger_instance
    _logger_instance = BudgetWatchLogger(log_level, max_file_size_mb, backup_count)
    return _logger_instance.get_logger()


def set_subject_context(subject_id: Optional[str]):
    """Set subject context for logging."""
    global _logger_instance
    if _logger_instance:
        _logger_instance.set_subject_context(subject_id)
