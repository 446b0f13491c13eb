from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from mention_slackbot.config import AppConfig, ConfigError
from mention_slackbot.models import Item
from mention_slackbot.notifiers import Notifier
from mention_slackbot.pipeline import PipelineError, PipelineRunner, RunStats
from mention_slackbot.sources import Source
from mention_slackbot.store import Store

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceResult:
    stats: list[RunStats] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)
    skipped_sources: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_sources

    def totals(self) -> tuple[int, int, int]:
        return (
            sum(item.processed for item in self.stats),
            sum(item.inserted for item in self.stats),
            sum(item.notified for item in self.stats),
        )


class NotificationService:
    """Runs each enabled source's pipeline, in order, against one shared store."""

    def __init__(
        self,
        *,
        config: AppConfig,
        sources: list[Source],
        store: Store,
        notifier: Notifier,
    ) -> None:
        self.config = config
        self.sources = sources
        self.store = store
        self.notifier = notifier

    def enabled_pipelines(self) -> list[tuple[str, PipelineRunner]]:
        """Ordered ``(name, runner)`` pairs for the sources allowed to run."""
        known = {source.name for source in self.sources}
        allow_list = self.config.enabled_sources
        if allow_list is not None:
            unknown = [name for name in allow_list if name not in known]
            if unknown:
                raise ConfigError(
                    f"Unknown source(s) in allow-list: {', '.join(unknown)}. "
                    f"Registered sources: {', '.join(source.name for source in self.sources)}"
                )

        pipelines: list[tuple[str, PipelineRunner]] = []
        for source in self.sources:
            if allow_list is not None and source.name not in allow_list:
                logger.info("Skipping source not in allow-list | source=%s", source.name)
                continue
            if not source.is_configured():
                logger.warning("Skipping unconfigured source | source=%s", source.name)
                continue
            pipelines.append((source.name, PipelineRunner(source, self.store, self.notifier)))
        return pipelines

    def run_once(self) -> ServiceResult:
        result = ServiceResult()
        pipelines = self.enabled_pipelines()
        enabled = {name for name, _ in pipelines}
        result.skipped_sources = [
            source.name for source in self.sources if source.name not in enabled
        ]

        for name, runner in pipelines:
            try:
                result.stats.append(runner.run())
            except PipelineError as exc:
                result.failed_sources.append(name)
                logger.error("Source failed | source=%s error=%s", name, exc)
                if not self.config.isolate_source_failures:
                    logger.error("Stopping run after fatal error in %s", name)
                    return result

        return result

    def backfill(self) -> ServiceResult:
        """Record every currently fetched item as seen without notifying."""
        result = ServiceResult()
        for name, runner in self.enabled_pipelines():
            stats = RunStats(source=name)
            try:
                self.store.ensure_schema(name)
                items = runner.source.fetch()
            except Exception as exc:  # noqa: BLE001
                logger.exception("backfill failed for %s: %s", name, exc)
                result.failed_sources.append(name)
                if not self.config.isolate_source_failures:
                    return result
                continue

            for item in items:
                stats.processed += 1
                try:
                    if self.store.exists(name, item.natural_key):
                        stats.skipped_seen += 1
                        continue
                    self.store.insert(name, item.natural_key, item.title)
                    stats.inserted += 1
                except Exception as exc:  # noqa: BLE001
                    message = (
                        f"{name}: failed to mark seen during backfill "
                        f"for {item.raw!r:.200}: {exc}"
                    )
                    logger.exception(message)
                    stats.errors.append(message)
            logger.info(
                "Backfill done | source=%s processed=%d marked_seen=%d",
                name,
                stats.processed,
                stats.inserted,
            )
            result.stats.append(stats)
        return result

    def preview(self, callback: Callable[[Item], None]) -> ServiceResult:
        """Fetch and hand every unseen item to ``callback``; records nothing as seen."""
        result = ServiceResult()
        for name, runner in self.enabled_pipelines():
            stats = RunStats(source=name)
            try:
                self.store.ensure_schema(name)
                items = runner.source.fetch()
            except Exception as exc:  # noqa: BLE001
                logger.exception("dry-run fetch failed for %s: %s", name, exc)
                result.failed_sources.append(name)
                if not self.config.isolate_source_failures:
                    return result
                continue

            for item in items:
                stats.processed += 1
                try:
                    if self.store.exists(name, item.natural_key):
                        stats.skipped_seen += 1
                        continue
                    callback(item)
                except Exception as exc:  # noqa: BLE001
                    message = f"{name}: failed to preview {item.raw!r:.200}: {exc}"
                    logger.exception(message)
                    stats.errors.append(message)
            result.stats.append(stats)
        return result
