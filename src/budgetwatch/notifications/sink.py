"""Notification sink interface and logging sink."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Set

from budgetwatch.monitor.models import NotificationRecord, Severity
from budgetwatch.utils.logger import get_logger

logger = get_logger()


class NotificationSink(ABC):
    """
    Destination for fired alerts.

    Implementations raise DeliveryError when the store is unreachable or
    rejects the write. Each call delivers exactly one record and may be
    invoked concurrently from several threads.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def deliver(self, record: NotificationRecord) -> None:
        pass

    def sent_identities(self, recipient: str, start: datetime, end: datetime) -> Set[str]:
        """
        Alert identities already delivered to recipient within [start, end).

        Stores that keep no history return an empty set.
        """
        return set()

    def close(self) -> None:
        """Release any resources held by the sink."""


class LogNotificationSink(NotificationSink):
    """Writes notifications to the application log only."""

    @property
    def name(self) -> str:
        return "log"

    def deliver(self, record: NotificationRecord) -> None:
        log = logger.warning if record.severity is Severity.WARNING else logger.info
        log(f"[{record.severity.value}] {record.recipient}: {record.title} - {record.message}")
