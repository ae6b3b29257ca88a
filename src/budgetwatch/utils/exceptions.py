"""Custom exception classes for BudgetWatch."""


class BudgetWatchError(Exception):
    """Base exception for BudgetWatch."""
    pass


class ConfigError(BudgetWatchError):
    """Application settings errors."""
    pass


class ConfigurationInvalid(ConfigError):
    """Budget configuration that cannot be monitored."""
    pass


class ValidationError(BudgetWatchError):
    """Input data validation errors."""
    pass


class DeliveryError(BudgetWatchError):
    """Notification store unreachable or rejected the write."""
    pass


# Retryable errors
class RetryableError(BudgetWatchError):
    """Base class for errors that should trigger retry."""
    pass


class SessionClosedError(BudgetWatchError):
    """Monitoring session was closed before the call."""
    pass
