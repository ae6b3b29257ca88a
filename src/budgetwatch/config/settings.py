"""Application settings loader from YAML configuration."""
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from budgetwatch.utils.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

NOTIFICATION_BACKENDS = ("sqlite", "sheets", "log")


@dataclass
class AppSettings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str
    app_version: str

    # Logging
    log_level: str
    log_max_file_size_mb: int
    log_backup_count: int

    # Monitoring
    timezone: str
    max_concurrent_deliveries: int
    currency_symbol: str
    performing_well_min_day: int
    warning_ratio: Decimal
    exceeded_ratio: Decimal
    performing_well_ratio: Decimal
    saving_tip_ratio: Decimal

    # Fixed category set, in display order
    categories: List[str] = field(default_factory=list)

    # Notifications
    notification_backend: str = "sqlite"
    database_file: str = "notifications.db"
    spreadsheet_id: Optional[str] = None
    service_account_path: Optional[str] = None
    oauth_client_secrets: Optional[str] = None
    oauth_token_path: Optional[str] = None

    # Retry
    retry_max_retries: int = 3
    retry_initial_delay_seconds: float = 1
    retry_backoff_factor: float = 2

    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            env_path = os.getenv("BUDGETWATCH_CONFIG")
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise ConfigError(f"Configuration file {config_path} is not valid YAML: {e}") from e

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: dict) -> "AppSettings":
        """Build settings from an already parsed configuration mapping."""
        try:
            monitoring = config["monitoring"]
            thresholds = monitoring["thresholds"]
            notifications = config.get("notifications") or {}
            retry = config.get("retry") or {}

            return cls(
                app_name=config["app"]["name"],
                app_version=str(config["app"]["version"]),
                log_level=config["logging"]["level"],
                log_max_file_size_mb=config["logging"]["max_file_size_mb"],
                log_backup_count=config["logging"]["backup_count"],
                timezone=monitoring["timezone"],
                max_concurrent_deliveries=monitoring["max_concurrent_deliveries"],
                currency_symbol=monitoring["currency_symbol"],
                performing_well_min_day=monitoring["performing_well_min_day"],
                warning_ratio=Decimal(str(thresholds["warning_ratio"])),
                exceeded_ratio=Decimal(str(thresholds["exceeded_ratio"])),
                performing_well_ratio=Decimal(str(thresholds["performing_well_ratio"])),
                saving_tip_ratio=Decimal(str(thresholds["saving_tip_ratio"])),
                categories=list(config.get("categories") or []),
                notification_backend=notifications.get("backend", "sqlite"),
                database_file=notifications.get("database_file", "notifications.db"),
                spreadsheet_id=notifications.get("spreadsheet_id"),
                service_account_path=notifications.get("service_account_path"),
                oauth_client_secrets=notifications.get("oauth_client_secrets"),
                oauth_token_path=notifications.get("oauth_token_path"),
                retry_max_retries=retry.get("max_retries", 3),
                retry_initial_delay_seconds=retry.get("initial_delay_seconds", 1),
                retry_backoff_factor=retry.get("backoff_factor", 2),
            )
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Malformed configuration, missing or invalid key: {e}")

    def validate(self) -> tuple[bool, str]:
        """Validate configuration values."""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return False, f"Unknown timezone: {self.timezone}"

        if self.max_concurrent_deliveries < 1:
            return False, "Max concurrent deliveries must be at least 1"

        if not 1 <= self.performing_well_min_day <= 31:
            return False, "Performing-well day must be between 1 and 31"

        if not (self.performing_well_ratio < self.saving_tip_ratio
                <= self.warning_ratio < self.exceeded_ratio):
            return False, "Thresholds must increase: performing well < saving tip <= warning < exceeded"

        if len(set(self.categories)) != len(self.categories):
            return False, "Category list contains duplicates"

        if self.notification_backend not in NOTIFICATION_BACKENDS:
            return False, f"Unknown notification backend: {self.notification_backend}"

        if self.notification_backend == "sheets":
            if not self.spreadsheet_id:
                return False, "Spreadsheet ID is required for the sheets backend"
            has_service_account = self.service_account_path and Path(self.service_account_path).exists()
            if not has_service_account and not self.oauth_client_secrets:
                return False, "Either service account or OAuth client secrets is required"

        return True, "Configuration is valid"


# Global settings instance
_settings: AppSettings = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
