from __future__ import annotations

import logging
from urllib.parse import quote

import feedparser

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import parse_datetime_utc, to_epoch_seconds
from mention_slackbot.utils.text_utils import normalize_whitespace
from mention_slackbot.utils.url_utils import canonicalize_url, derive_external_id

from .base import Source
from .registry import register_source

logger = logging.getLogger(__name__)

FEED_URL = "https://medium.com/feed/tag/{}"
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/medium/ea7124868c6b2c68.png"


class MediumArticle(Item):
    source_type = "medium"

    @property
    def link(self) -> str:
        return canonicalize_url(str(self.raw.get("link") or ""))

    @property
    def natural_key(self) -> str:
        raw_identifier = str(self.raw.get("id") or self.raw.get("guid") or "").strip() or None
        return derive_external_id(raw_identifier, self.link)

    @property
    def title(self) -> str:
        return normalize_whitespace(str(self.raw.get("title") or ""))

    def to_message(self) -> Message:
        author = normalize_whitespace(str(self.raw.get("author") or ""))
        tags = [
            str(tag.get("term"))
            for tag in self.raw.get("tags") or []
            if tag.get("term")
        ]
        published = parse_datetime_utc(self.raw.get("published")) or parse_datetime_utc(
            self.raw.get("published_parsed")
        )
        return Message(
            text=f"New article on <{self.link}|Medium>",
            fallback="New article on Medium!",
            title=self.title,
            title_link=self.link,
            author_name=author,
            footer="Medium Article Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(published),
            fields=[MessageField("Tags", ", ".join(tags))] if tags else [],
            username="Medium Article Notifications",
            icon_emoji=":medium:",
        )


class MediumSource(Source):
    """Newest posts from the public tag RSS feed."""

    name = "medium"

    def fetch(self) -> list[Item]:
        url = FEED_URL.format(quote(self.tag, safe=""))
        response = self._get(url)

        parsed = feedparser.parse(response.content)
        if getattr(parsed, "bozo", False):
            logger.warning("Feed parsing bozo exception for %s: %s", url, parsed.bozo_exception)

        return [MediumArticle(dict(entry)) for entry in parsed.entries]


@register_source("medium")
def _build_medium_source(config: AppConfig) -> Source:
    return MediumSource(config)
