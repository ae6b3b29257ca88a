"""Local notification store using SQLite."""
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

from .sink import NotificationSink
from budgetwatch.monitor.models import NotificationRecord, Severity
from budgetwatch.utils.exceptions import DeliveryError
from budgetwatch.utils.logger import get_logger, get_app_home

logger = get_logger()


@dataclass
class StoredNotification:
    """Notification row as persisted."""
    id: int
    recipient: str
    title: str
    message: str
    severity: Severity
    identity: str
    created_at: datetime
    read: bool = False


class SQLiteNotificationStore(NotificationSink):
    """Persists notification records in a local database."""

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            db_path = get_app_home() / "notifications.db"
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @property
    def name(self) -> str:
        return "sqlite"

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    type TEXT NOT NULL,
                    identity TEXT,
                    read INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_user ON notifications(user_id)")
            conn.commit()

    def deliver(self, record: NotificationRecord) -> None:
        created_at = record.created_at or datetime.now()
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO notifications (user_id, title, message, type, identity, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    record.recipient,
                    record.title,
                    record.message,
                    record.severity.value,
                    record.identity,
                    created_at.isoformat()
                ))
                conn.commit()
        except sqlite3.Error as e:
            raise DeliveryError(f"Failed to store notification {record.identity}: {e}") from e

        logger.debug(f"Stored notification {record.identity} for {record.recipient}")

    def list_notifications(self, recipient: Optional[str] = None, unread_only: bool = False) -> List[StoredNotification]:
        """Return notifications, newest first."""
        query = "SELECT id, user_id, title, message, type, identity, created_at, read FROM notifications"
        clauses, params = [], []
        if recipient:
            clauses.append("user_id = ?")
            params.append(recipient)
        if unread_only:
            clauses.append("read = 0")
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC, id DESC"

        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            StoredNotification(
                id=r[0],
                recipient=r[1],
                title=r[2],
                message=r[3],
                severity=Severity(r[4]),
                identity=r[5] or "",
                created_at=datetime.fromisoformat(r[6]),
                read=bool(r[7])
            )
            for r in rows
        ]

    def sent_identities(self, recipient: str, start: datetime, end: datetime) -> Set[str]:
        """Identities stored for recipient with created_at in [start, end)."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT identity, created_at FROM notifications WHERE user_id = ? AND identity != ''",
                    (recipient,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DeliveryError(f"Failed to read notification history for {recipient}: {e}") from e

        sent = set()
        for identity, created_at in rows:
            moment = datetime.fromisoformat(created_at)
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=start.tzinfo)
            if start <= moment < end:
                sent.add(identity)
        return sent

    def mark_read(self, notification_id: int) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("UPDATE notifications SET read = 1 WHERE id = ?", (notification_id,))
            conn.commit()
            return cursor.rowcount > 0

    def clear(self, recipient: Optional[str] = None) -> int:
        """Delete notifications of one recipient, or all of them."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            if recipient:
                cursor.execute("DELETE FROM notifications WHERE user_id = ?", (recipient,))
            else:
                cursor.execute("DELETE FROM notifications")
            conn.commit()
            return cursor.rowcount
