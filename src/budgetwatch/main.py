"""Command line entry point."""
import sys
import time
import signal
import argparse
from pathlib import Path

from budgetwatch.config.settings import AppSettings
from budgetwatch.monitor import (
    Aggregator,
    MonitorLoop,
    PeriodClock,
    load_budget_config,
    load_expense_snapshot,
    summarize
)
from budgetwatch.notifications import SQLiteNotificationStore, notification_db_path
from budgetwatch.utils.exceptions import BudgetWatchError, ConfigError
from budgetwatch.utils.logger import configure_logging, get_logger

logger = get_logger()
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


def _load_settings(config_path: str = None) -> AppSettings:
    settings = AppSettings.load(Path(config_path) if config_path else None)
    is_valid, message = settings.validate()
    if not is_valid:
        raise BudgetWatchError(f"Invalid configuration: {message}")
    configure_logging(settings.log_level, settings.log_max_file_size_mb, settings.log_backup_count)
    return settings


def _notification_store(settings: AppSettings) -> SQLiteNotificationStore:
    if settings.notification_backend != "sqlite":
        raise ConfigError(
            f"Stored notifications are only available with the sqlite backend "
            f"(configured: {settings.notification_backend})"
        )
    return SQLiteNotificationStore(notification_db_path(settings))


def check_command(settings: AppSettings, subject: str, expenses_path: str, budget_path: str) -> int:
    """Run one monitored pass and print the alerts that fired."""
    expenses = load_expense_snapshot(Path(expenses_path), settings.categories)
    budget = load_budget_config(Path(budget_path), settings.categories)

    with MonitorLoop.from_settings(settings) as loop:
        result = loop.on_data_change(subject, expenses, budget)

    if result.skipped:
        print("No expenses to evaluate.")
        return 0

    if not result.fired:
        print("✓ No new alerts.")
    for identity in result.delivered:
        print(f"✓ Delivered: {identity}")
    for identity in result.failed:
        print(f"✗ Failed: {identity}")
    return 1 if result.failed else 0


def status_command(settings: AppSettings, expenses_path: str, budget_path: str) -> int:
    """Print overall and per-category budget progress for the current month."""
    expenses = load_expense_snapshot(Path(expenses_path), settings.categories)
    budget = load_budget_config(Path(budget_path), settings.categories)

    clock = PeriodClock(settings.timezone)
    aggregate = Aggregator(clock).aggregate(expenses)
    status = summarize(aggregate, budget, settings.categories)
    cur = settings.currency_symbol

    print(f"\nBudget status for {status.period_start:%B %Y}")
    percent = f"{status.percent_used}%" if status.percent_used is not None else "n/a"
    print(
        f"Spent {cur}{status.spent:.2f} of {cur}{status.budget:.2f} "
        f"({percent}), remaining {cur}{status.remaining:.2f} [{status.level}]"
    )
    print(f"\n{'Category':<16} {'Spent':>10} {'Limit':>10} {'Used':>8}  Level")
    print("-" * 56)
    for line in status.categories:
        limit = f"{cur}{line.limit:.2f}" if line.limit is not None else "-"
        used = f"{line.percent_used}%" if line.percent_used is not None else "-"
        print(f"{line.category:<16} {cur}{line.spent:>9.2f} {limit:>10} {used:>8}  {line.level}")
    return 0


def list_notifications_command(settings: AppSettings, subject: str = None) -> int:
    store = _notification_store(settings)
    notifications = store.list_notifications(subject)

    if not notifications:
        print("No notifications found.")
        return 0

    print(f"\nTotal: {len(notifications)} notifications")
    print(f"{'Type':<8} {'Recipient':<20} {'Alert':<20} {'Created At':<20} Title")
    print("-" * 90)
    for n in notifications:
        print(
            f"{n.severity.value:<8} {n.recipient:<20} {n.identity:<20} "
            f"{n.created_at.strftime('%Y-%m-%d %H:%M:%S'):<20} {n.title}"
        )
    return 0


def clear_notifications_command(settings: AppSettings, subject: str = None) -> int:
    deleted = _notification_store(settings).clear(subject)
    if subject:
        print(f"✓ Cleared {deleted} notifications for: {subject}")
    else:
        print(f"✓ Cleared {deleted} notifications (all recipients)")
    return 0


def _mtimes(*paths: Path) -> tuple:
    return tuple(p.stat().st_mtime if p.exists() else None for p in paths)


def watch_command(settings: AppSettings, subject: str, expenses_path: str, budget_path: str, interval: int) -> int:
    """Keep a monitoring session open, re-evaluating whenever an input file changes."""
    global shutdown_requested
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    expenses_file, budget_file = Path(expenses_path), Path(budget_path)
    last_seen = None

    with MonitorLoop.from_settings(settings) as loop:
        session = loop.start_session(subject)
        logger.info(f"Watching inputs for {subject}; next rollover at {session.next_rollover.isoformat()}")

        while not shutdown_requested:
            current = _mtimes(expenses_file, budget_file)
            if current != last_seen:
                last_seen = current
                try:
                    expenses = load_expense_snapshot(expenses_file, settings.categories)
                    budget = load_budget_config(budget_file, settings.categories)
                    result = session.on_data_change(expenses, budget)
                    if result.fired:
                        logger.info(f"Fired alerts: {', '.join(result.fired)}")
                except BudgetWatchError as e:
                    logger.error(f"Skipping evaluation: {e}")

            for _ in range(interval):
                if shutdown_requested:
                    break
                time.sleep(1)

    logger.info("Watcher stopped gracefully")
    return 0


def main(argv=None):
    """Main entry point for the BudgetWatch CLI."""
    parser = argparse.ArgumentParser(description="BudgetWatch budget threshold monitor")
    parser.add_argument("--config", help="Path to config.yaml (default: packaged settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name in ("check", "watch"):
        sub = subparsers.add_parser(name)
        sub.add_argument("--subject", required=True, help="Subject (user) identifier")
        sub.add_argument("--expenses", required=True, help="JSON expense snapshot")
        sub.add_argument("--budget", required=True, help="YAML budget file")
        if name == "watch":
            sub.add_argument("--interval", type=int, default=5, help="Seconds between input checks")

    status = subparsers.add_parser("status")
    status.add_argument("--expenses", required=True, help="JSON expense snapshot")
    status.add_argument("--budget", required=True, help="YAML budget file")

    for name in ("list-notifications", "clear-notifications"):
        sub = subparsers.add_parser(name)
        sub.add_argument("--subject", help="Restrict to one subject")

    args = parser.parse_args(argv)

    try:
        settings = _load_settings(args.config)

        if args.command == "check":
            return check_command(settings, args.subject, args.expenses, args.budget)
        if args.command == "watch":
            return watch_command(settings, args.subject, args.expenses, args.budget, args.interval)
        if args.command == "status":
            return status_command(settings, args.expenses, args.budget)
        if args.command == "list-notifications":
            return list_notifications_command(settings, args.subject)
        if args.command == "clear-notifications":
            return clear_notifications_command(settings, args.subject)
    except BudgetWatchError as e:
        logger.critical(str(e))
        return 2
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
