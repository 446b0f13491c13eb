from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mention_slackbot.models import Item
from mention_slackbot.notifiers import Notifier
from mention_slackbot.sources import Source
from mention_slackbot.store import Store

logger = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """A source's pipeline could not run to completion."""

    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name


@dataclass(slots=True)
class RunStats:
    source: str
    processed: int = 0
    inserted: int = 0
    notified: int = 0
    skipped_seen: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class PipelineRunner:
    """fetch -> check seen -> insert -> notify, one item at a time.

    Schema and fetch failures abort the source with ``PipelineError``. Per-item
    failures are logged and the next item is processed. An item whose
    notification fails stays recorded as seen.
    """

    def __init__(self, source: Source, store: Store, notifier: Notifier) -> None:
        self.source = source
        self.store = store
        self.notifier = notifier

    @property
    def name(self) -> str:
        return self.source.name

    def run(self) -> RunStats:
        stats = RunStats(source=self.name)

        try:
            self.store.ensure_schema(self.name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Schema preparation failed | source=%s", self.name)
            raise PipelineError(self.name, f"schema preparation failed: {exc}") from exc

        logger.info("Fetching items | source=%s", self.name)
        try:
            items = self.source.fetch()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Fetch failed | source=%s", self.name)
            raise PipelineError(self.name, f"fetch failed: {exc}") from exc

        logger.info("Processing items | source=%s count=%d", self.name, len(items))
        for item in items:
            stats.processed += 1
            self._process(item, stats)

        logger.info(
            "Done | source=%s processed=%d inserted=%d notified=%d",
            self.name,
            stats.processed,
            stats.inserted,
            stats.notified,
        )
        return stats

    def _process(self, item: Item, stats: RunStats) -> None:
        try:
            key = item.natural_key
            title = item.title
        except Exception as exc:  # noqa: BLE001
            message = f"{self.name}: undecodable item {item.raw!r:.200}: {exc}"
            logger.error(message)
            stats.errors.append(message)
            return

        try:
            seen = self.store.exists(self.name, key)
        except Exception as exc:  # noqa: BLE001
            message = f"{self.name}: failed to read dedup state for {key}: {exc}"
            logger.exception("Dedup check failed | source=%s key=%s title=%s", self.name, key, title)
            stats.errors.append(message)
            return
        if seen:
            stats.skipped_seen += 1
            return

        logger.info("Inserting new item | source=%s key=%s title=%s", self.name, key, title)
        try:
            self.store.insert(self.name, key, title)
        except Exception as exc:  # noqa: BLE001
            message = f"{self.name}: failed to insert {key}: {exc}"
            logger.exception("Insert failed | source=%s key=%s title=%s", self.name, key, title)
            stats.errors.append(message)
            return
        stats.inserted += 1

        try:
            delivered = self.notifier.notify(item)
        except Exception as exc:  # noqa: BLE001
            message = f"{self.name}: failed to notify {key}: {exc}"
            logger.exception("Notify failed | source=%s key=%s title=%s", self.name, key, title)
            stats.errors.append(message)
            return
        if delivered:
            stats.notified += 1
