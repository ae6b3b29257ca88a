"""Google Sheets notification store."""
import socket
from datetime import datetime
from typing import Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .sink import NotificationSink
from budgetwatch.monitor.models import NotificationRecord
from budgetwatch.utils.auth import get_credentials
from budgetwatch.utils.exceptions import DeliveryError
from budgetwatch.utils.logger import get_logger
from budgetwatch.utils.retry import retry_with_backoff

logger = get_logger()

SHEET_TITLE = "Notifications"
HEADER = ["Created At", "Recipient", "Type", "Title", "Message", "Alert"]


class SheetsNotificationStore(NotificationSink):
    """Appends each notification as a row of the Notifications tab."""

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_path: Optional[str] = None,
        oauth_client_secrets: Optional[str] = None,
        oauth_token_path: Optional[str] = None,
        sheets_service=None,
        retry_max_retries: int = 3,
        retry_initial_delay: float = 1.0,
        retry_backoff_factor: float = 2.0
    ):
        self.spreadsheet_id = spreadsheet_id

        if sheets_service is None:
            credentials = get_credentials(
                service_account_path=service_account_path,
                oauth_client_secrets=oauth_client_secrets,
                oauth_token_path=oauth_token_path
            )
            sheets_service = build("sheets", "v4", credentials=credentials)
        self.sheets_service = sheets_service

        ensure = retry_with_backoff(
            max_retries=retry_max_retries,
            initial_delay=retry_initial_delay,
            backoff_factor=retry_backoff_factor
        )(self.ensure_sheet)
        ensure()
        logger.info("Sheets notification store initialized")

    @property
    def name(self) -> str:
        return "sheets"

    def ensure_sheet(self) -> None:
        """Create the Notifications tab with its header row if missing."""
        result = self.sheets_service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id
        ).execute()
        sheet_names = [sheet["properties"]["title"] for sheet in result.get("sheets", [])]

        if SHEET_TITLE in sheet_names:
            return

        self.sheets_service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": [{"addSheet": {"properties": {"title": SHEET_TITLE}}}]}
        ).execute()

        self.sheets_service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{SHEET_TITLE}!A1",
            valueInputOption="RAW",
            body={"values": [HEADER]}
        ).execute()
        logger.info(f"Created {SHEET_TITLE} sheet")

    def deliver(self, record: NotificationRecord) -> None:
        created_at = record.created_at or datetime.now()
        row = [
            created_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.recipient,
            record.severity.value,
            record.title,
            record.message,
            record.identity
        ]

        try:
            self.sheets_service.spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=f"{SHEET_TITLE}!A2",
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]}
            ).execute()
        except (HttpError, ConnectionError, TimeoutError, socket.timeout) as e:
            raise DeliveryError(f"Sheets API rejected notification {record.identity}: {e}") from e

        logger.debug(f"Appended notification {record.identity} to {SHEET_TITLE} sheet")
