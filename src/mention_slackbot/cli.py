from __future__ import annotations

import argparse
import logging
import sys

from mention_slackbot.config import AppConfig, ConfigError, load_config
from mention_slackbot.logging_config import setup_logging
from mention_slackbot.models import Item
from mention_slackbot.notifiers import build_notifier, render_slack_message_text
from mention_slackbot.service import NotificationService, ServiceResult
from mention_slackbot.sources import build_sources
from mention_slackbot.store import SQLiteStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mention-bot",
        description="Poll content sources for a search term and post new items to Slack.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to config YAML (default: config.yaml if present); environment variables override it",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Fetch once, record new items and notify Slack")
    subparsers.add_parser("dry-run", help="Fetch once and print messages for unseen items")
    subparsers.add_parser("init-db", help="Create the dedup tables for enabled sources")

    backfill = subparsers.add_parser(
        "backfill",
        help="Fetch current items and mark them seen without posting",
    )
    backfill.add_argument(
        "--mark-seen",
        action="store_true",
        help="Required safety flag for backfill operation",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(
            args.config or DEFAULT_CONFIG_PATH, required=args.config is not None
        )
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or app_config.log_level, app_config.log_format)

    if args.command == "backfill" and not args.mark_seen:
        parser.error("backfill requires --mark-seen")

    store = SQLiteStore(app_config.storage.path)
    try:
        store.init_db()
    except StoreError as exc:
        logger.error("Cannot prepare dedup store: %s", exc)
        return 1

    service = _build_service(app_config, store)

    try:
        if args.command == "init-db":
            for name, _ in service.enabled_pipelines():
                store.ensure_schema(name)
            logger.info("Initialized SQLite database at %s", app_config.storage.path)
            return 0
        if args.command == "backfill":
            result = service.backfill()
        elif args.command == "dry-run":
            result = service.preview(_dry_run_preview)
        else:
            result = service.run_once()
    except ConfigError as exc:
        logger.error("Config error: %s", exc)
        return 2
    except StoreError as exc:
        logger.error("Dedup store error: %s", exc)
        return 1

    _log_result(args.command, result)
    return 0 if result.ok else 1


def _build_service(app_config: AppConfig, store: SQLiteStore) -> NotificationService:
    return NotificationService(
        config=app_config,
        sources=build_sources(app_config),
        store=store,
        notifier=build_notifier(app_config),
    )


def _log_result(command: str, result: ServiceResult) -> None:
    processed, inserted, notified = result.totals()
    logger.info(
        "Run complete | command=%s processed=%d inserted=%d notified=%d failed_sources=%s",
        command,
        processed,
        inserted,
        notified,
        ",".join(result.failed_sources) or "none",
    )


def _dry_run_preview(item: Item) -> None:
    print(f"[DRY RUN] {item.source_type} {item.natural_key} WOULD POST TEXT:")
    print(render_slack_message_text(item.to_message()))
    print("")


if __name__ == "__main__":
    raise SystemExit(main())
