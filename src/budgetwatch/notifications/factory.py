"""Build the configured notification sink."""
from pathlib import Path

from .sink import NotificationSink, LogNotificationSink
from .sqlite_store import SQLiteNotificationStore
from .sheets_store import SheetsNotificationStore
from budgetwatch.utils.exceptions import ConfigError
from budgetwatch.utils.logger import get_app_home


def notification_db_path(settings) -> Path:
    """Database file of the sqlite backend; relative paths live under the app home."""
    db_path = Path(settings.database_file)
    if not db_path.is_absolute():
        db_path = get_app_home() / db_path
    return db_path


def create_sink(settings) -> NotificationSink:
    backend = settings.notification_backend
    if backend == "log":
        return LogNotificationSink()
    if backend == "sqlite":
        return SQLiteNotificationStore(notification_db_path(settings))
    if backend == "sheets":
        return SheetsNotificationStore(
            settings.spreadsheet_id,
            service_account_path=settings.service_account_path,
            oauth_client_secrets=settings.oauth_client_secrets,
            oauth_token_path=settings.oauth_token_path,
            retry_max_retries=settings.retry_max_retries,
            retry_initial_delay=settings.retry_initial_delay_seconds,
            retry_backoff_factor=settings.retry_backoff_factor
        )
    raise ConfigError(f"Unknown notification backend: {backend}")
