from __future__ import annotations

import dataclasses
import logging

import pytest

from mention_slackbot.config import AppConfig, ConfigError
from mention_slackbot.models import Item, Message
from mention_slackbot.notifiers.base import Notifier
from mention_slackbot.service import NotificationService
from mention_slackbot.sources import registered_source_names
from mention_slackbot.sources.base import Source
from mention_slackbot.store import SQLiteStore


class NamedItem(Item):
    def __init__(self, source_type: str, key: str) -> None:
        super().__init__({"id": key})
        self.source_type = source_type

    @property
    def natural_key(self) -> str:
        return self.raw["id"]

    def to_message(self) -> Message:
        return Message(
            text="New item",
            fallback="New item",
            title=self.natural_key,
            title_link="",
            footer="Test",
            footer_icon="",
            username="Test",
            icon_emoji=":test:",
        )


class KeylessItem(NamedItem):
    """A record that arrived without its identifier."""

    def __init__(self, source_type: str) -> None:
        Item.__init__(self, {"title": "no id"})
        self.source_type = source_type


class NamedSource(Source):
    def __init__(
        self,
        name: str,
        config: AppConfig,
        keys: list[str],
        *,
        fail: bool = False,
        configured: bool = True,
    ) -> None:
        super().__init__(config)
        self.name = name
        self.keys = keys
        self.fail = fail
        self.configured = configured
        self.fetch_calls = 0

    def is_configured(self) -> bool:
        return self.configured

    def fetch(self) -> list[Item]:
        self.fetch_calls += 1
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        return [NamedItem(self.name, key) for key in self.keys]


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        super().__init__(enabled=True)
        self.delivered: list[str] = []

    def build_payload(self, item: Item) -> dict:
        return {"key": f"{item.source_type}:{item.natural_key}"}

    def deliver(self, payload: dict) -> None:
        self.delivered.append(payload["key"])


def _config(**overrides: object) -> AppConfig:
    return dataclasses.replace(AppConfig(tag="dokku"), **overrides)


def _service(tmp_path, config: AppConfig, sources: list[Source], notifier=None):
    store = SQLiteStore(str(tmp_path / "state.db"))
    store.init_db()
    return NotificationService(
        config=config,
        sources=sources,
        store=store,
        notifier=notifier or RecordingNotifier(),
    )


def test_allow_list_runs_only_named_sources(tmp_path, caplog) -> None:
    config = _config(enabled_sources=("b",))
    sources = [
        NamedSource("a", config, ["1"]),
        NamedSource("b", config, ["1"]),
        NamedSource("c", config, ["1"]),
    ]
    service = _service(tmp_path, config, sources)

    with caplog.at_level(logging.INFO, logger="mention_slackbot.service"):
        result = service.run_once()

    assert [source.fetch_calls for source in sources] == [0, 1, 0]
    assert [stats.source for stats in result.stats] == ["b"]
    assert result.skipped_sources == ["a", "c"]
    assert "Skipping source not in allow-list | source=a" in caplog.text
    assert "Skipping source not in allow-list | source=c" in caplog.text


def test_without_allow_list_every_source_runs_in_order(tmp_path) -> None:
    config = _config()
    notifier = RecordingNotifier()
    sources = [NamedSource(name, config, ["1"]) for name in ("a", "b", "c")]

    result = _service(tmp_path, config, sources, notifier).run_once()

    assert result.ok
    assert notifier.delivered == ["a:1", "b:1", "c:1"]
    assert result.totals() == (3, 3, 3)


def test_unknown_allow_list_entry_is_a_config_error(tmp_path) -> None:
    config = _config(enabled_sources=("nope",))
    service = _service(tmp_path, config, [NamedSource("a", config, [])])

    with pytest.raises(ConfigError):
        service.run_once()


def test_fatal_source_error_stops_the_run(tmp_path) -> None:
    config = _config()
    sources = [
        NamedSource("a", config, ["1"]),
        NamedSource("b", config, [], fail=True),
        NamedSource("c", config, ["1"]),
    ]

    result = _service(tmp_path, config, sources).run_once()

    assert not result.ok
    assert result.failed_sources == ["b"]
    assert sources[2].fetch_calls == 0


def test_isolated_source_failure_lets_other_sources_run(tmp_path) -> None:
    config = _config(isolate_source_failures=True)
    sources = [
        NamedSource("a", config, [], fail=True),
        NamedSource("b", config, ["1", "2"]),
    ]

    result = _service(tmp_path, config, sources).run_once()

    assert result.failed_sources == ["a"]
    assert [stats.source for stats in result.stats] == ["b"]
    assert result.stats[0].notified == 2
    assert not result.ok


def test_unconfigured_source_is_skipped(tmp_path) -> None:
    config = _config()
    sources = [NamedSource("twitter", config, ["1"], configured=False)]

    result = _service(tmp_path, config, sources).run_once()

    assert result.ok
    assert result.stats == []
    assert sources[0].fetch_calls == 0


def test_backfill_marks_seen_without_notifying(tmp_path) -> None:
    config = _config()
    notifier = RecordingNotifier()
    service = _service(tmp_path, config, [NamedSource("a", config, ["1", "2"])], notifier)

    backfill = service.backfill()
    run = service.run_once()

    assert backfill.stats[0].inserted == 2
    assert notifier.delivered == []
    assert run.totals() == (2, 0, 0)


def test_preview_lists_unseen_items_without_recording_them(tmp_path) -> None:
    config = _config()
    service = _service(tmp_path, config, [NamedSource("a", config, ["1", "2"])])
    previewed: list[str] = []

    service.preview(lambda item: previewed.append(item.natural_key))
    service.preview(lambda item: previewed.append(item.natural_key))

    assert previewed == ["1", "2", "1", "2"]
    assert service.store.exists("a", "1") is False


def test_registered_sources_have_a_fixed_order() -> None:
    assert registered_source_names() == [
        "stackoverflow",
        "github",
        "hackernews_story",
        "hackernews_comment",
        "devto",
        "mastodon",
        "medium",
        "reddit",
        "reddit_subreddit",
        "twitter",
    ]


class MixedSource(NamedSource):
    def fetch(self) -> list[Item]:
        self.fetch_calls += 1
        return [KeylessItem(self.name), NamedItem(self.name, "2")]


def test_preview_skips_items_it_cannot_key(tmp_path, caplog) -> None:
    config = _config()
    service = _service(tmp_path, config, [MixedSource("a", config, [])])
    previewed: list[str] = []

    with caplog.at_level(logging.ERROR, logger="mention_slackbot.service"):
        result = service.preview(lambda item: previewed.append(item.natural_key))

    assert previewed == ["2"]
    assert result.ok
    assert result.stats[0].processed == 2
    assert len(result.stats[0].errors) == 1
    assert "failed to preview" in caplog.text


def test_backfill_skips_items_it_cannot_key(tmp_path) -> None:
    config = _config()
    service = _service(tmp_path, config, [MixedSource("a", config, [])])

    result = service.backfill()

    assert result.stats[0].inserted == 1
    assert len(result.stats[0].errors) == 1
    assert service.store.exists("a", "2") is True
