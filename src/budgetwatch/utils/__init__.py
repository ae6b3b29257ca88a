"""Utility modules."""
from .logger import get_logger, set_subject_context, configure_logging, get_app_home
from .exceptions import (
    BudgetWatchError,
    ConfigError,
    ConfigurationInvalid,
    ValidationError,
    DeliveryError,
    SessionClosedError,
    RetryableError
)
from .retry import retry_with_backoff

__all__ = [
    "get_logger",
    "set_subject_context",
    "configure_logging",
    "get_app_home",
    "BudgetWatchError",
    "ConfigError",
    "ConfigurationInvalid",
    "ValidationError",
    "DeliveryError",
    "SessionClosedError",
    "RetryableError",
    "retry_with_backoff"
]
