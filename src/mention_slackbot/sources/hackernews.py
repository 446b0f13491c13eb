from __future__ import annotations

import logging
from typing import Any

from mention_slackbot.config import AppConfig
from mention_slackbot.filters import HighlightMatchFilter
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds
from mention_slackbot.utils.text_utils import html_to_mrkdwn, truncate

from .base import Source
from .registry import register_source

logger = logging.getLogger(__name__)

API_URL = "https://hn.algolia.com/api/v1/search_by_date"
ITEM_URL = "https://news.ycombinator.com/item?id={}"
USER_URL = "https://news.ycombinator.com/user?id={}"
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/hacker-news/0daae30bfa8eefc6.png"


class _HackerNewsHit(Item):
    @property
    def natural_key(self) -> str:
        return str(self.raw["objectID"])

    @property
    def link(self) -> str:
        return ITEM_URL.format(self.natural_key)

    @property
    def author(self) -> str:
        return str(self.raw.get("author") or "")

    def _created_at(self) -> int | None:
        return to_epoch_seconds(self.raw.get("created_at_i")) or to_epoch_seconds(
            self.raw.get("created_at")
        )


class HackerNewsStory(_HackerNewsHit):
    source_type = "hackernews_story"

    @property
    def title(self) -> str:
        return str(self.raw.get("title") or "")

    def to_message(self) -> Message:
        fields = [
            MessageField("# Points", str(self.raw.get("points") or 0)),
            MessageField("# Comments", str(self.raw.get("num_comments") or 0)),
            MessageField("Type", "\U0001f4da"),
        ]
        original_url = str(self.raw.get("url") or "")
        if original_url:
            fields.append(MessageField("Original Link", original_url))
        return Message(
            text=f"New story on <{self.link}|Hacker News>",
            fallback="New story on Hacker News!",
            title=self.title,
            title_link=self.link,
            author_name=self.author,
            author_link=USER_URL.format(self.author),
            footer="Hacker News Story Notification",
            footer_icon=ICON_URL,
            ts=self._created_at(),
            fields=fields,
            username="Hacker News Story Notifications",
            icon_emoji=":hacker-news:",
        )


class HackerNewsComment(_HackerNewsHit):
    source_type = "hackernews_comment"

    @property
    def title(self) -> str:
        story_title = str(self.raw.get("story_title") or "")
        return f"Comment on: {story_title}" if story_title else "New comment"

    def to_message(self) -> Message:
        fields = [MessageField("Type", "✍️")]
        story_url = str(self.raw.get("story_url") or self.raw.get("url") or "")
        if story_url:
            fields.append(MessageField("Original Link", story_url))
        return Message(
            text=f"New comment on <{self.link}|Hacker News>",
            fallback="New comment on Hacker News!",
            title=self.title,
            title_link=self.link,
            author_name=self.author,
            author_link=USER_URL.format(self.author),
            body=truncate(html_to_mrkdwn(str(self.raw.get("comment_text") or "")), 500),
            footer="Hacker News Comment Notification",
            footer_icon=ICON_URL,
            ts=self._created_at(),
            fields=fields,
            username="Hacker News Comment Notifications",
            icon_emoji=":hacker-news:",
        )


class _HackerNewsSearchSource(Source):
    search_tags = ""
    item_class: type[_HackerNewsHit] = _HackerNewsHit

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.highlight_filter = HighlightMatchFilter(config.tag)

    def fetch(self) -> list[Item]:
        hits = self._fetch_pages(self._fetch_page, first_page=0)
        items: list[Item] = []
        for hit in hits:
            result = self.highlight_filter.evaluate(hit)
            if not result.matched:
                logger.debug(
                    "Skipping hit | source=%s key=%s reason=%s",
                    self.name,
                    hit.get("objectID"),
                    result.reason_text(),
                )
                continue
            items.append(self.item_class(hit))
        return items

    def _fetch_page(self, page: int) -> list[dict[str, Any]]:
        payload = self._get_json(
            API_URL,
            params={"query": self.tag, "tags": self.search_tags, "page": page},
        )
        return list(payload.get("hits") or [])


class HackerNewsStorySource(_HackerNewsSearchSource):
    name = "hackernews_story"
    search_tags = "story"
    item_class = HackerNewsStory


class HackerNewsCommentSource(_HackerNewsSearchSource):
    name = "hackernews_comment"
    search_tags = "comment"
    item_class = HackerNewsComment


@register_source("hackernews_story")
def _build_story_source(config: AppConfig) -> Source:
    return HackerNewsStorySource(config)


@register_source("hackernews_comment")
def _build_comment_source(config: AppConfig) -> Source:
    return HackerNewsCommentSource(config)
