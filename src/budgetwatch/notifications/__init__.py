"""Notification delivery module."""
from .sink import NotificationSink, LogNotificationSink
from .sqlite_store import SQLiteNotificationStore, StoredNotification
from .sheets_store import SheetsNotificationStore
from .factory import create_sink, notification_db_path

__all__ = [
    "NotificationSink",
    "LogNotificationSink",
    "SQLiteNotificationStore",
    "StoredNotification",
    "SheetsNotificationStore",
    "create_sink",
    "notification_db_path"
]
