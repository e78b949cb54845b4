import argparse
import logging
import sys

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.app_shell.logging_setup import configure_logging
from src.components.subscriptions.models import SubscriptionStoreError
from src.configuration.loader import load_settings
from src.configuration.models import Settings

logger = logging.getLogger("cli")


def get_settings_or_exit() -> Settings:
    try:
        return load_settings()
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    try:
        applied = SQLiteMigrator(settings.database.path).run_migrations()
    except RuntimeError as e:
        logger.error("Migration failed: %s", e)
        sys.exit(1)
    print(f"Applied {len(applied)} migration(s) to {settings.database.path}.")


def handle_confirmed(settings: Settings, args: argparse.Namespace) -> None:
    store = SQLiteSubscriptionStore(
        settings.database.path,
        busy_timeout_seconds=settings.database.busy_timeout_seconds,
    )
    try:
        subscribers = store.list_confirmed()
    except SubscriptionStoreError as e:
        logger.error("Could not read subscribers: %s", e)
        sys.exit(1)

    for subscriber in subscribers:
        print(f"{subscriber.email}\t{subscriber.name}")
    print(f"{len(subscribers)} confirmed subscriber(s).", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Newsletter subscriptions CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending database migrations")
    subparsers.add_parser("confirmed", help="List confirmed subscribers")

    args = parser.parse_args(argv)

    settings = get_settings_or_exit()
    configure_logging(settings.logging.level)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "confirmed":
        handle_confirmed(settings, args)


if __name__ == "__main__":
    main()
