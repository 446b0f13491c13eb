from __future__ import annotations

from typing import Any

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds

from .base import Source
from .registry import register_source

API_URL = "https://dev.to/api/articles"
PAGE_SIZE = 100
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/devto-rainbow/387781e03f7a17fe.png"


class DevtoArticle(Item):
    source_type = "devto"

    @property
    def natural_key(self) -> int:
        return int(self.raw["id"])

    @property
    def title(self) -> str:
        return str(self.raw.get("title") or "")

    def to_message(self) -> Message:
        user = self.raw.get("user") or {}
        username = str(user.get("username") or "")
        link = str(self.raw.get("url") or "")
        created = (
            self.raw.get("created_at")
            or self.raw.get("published_timestamp")
            or self.raw.get("published_at")
        )
        return Message(
            text=f"New article on <{link}|Dev.to>",
            fallback="New article on Dev.to!",
            title=self.title,
            title_link=link,
            author_name=username,
            author_link=f"https://dev.to/{username}",
            author_icon=str(user.get("profile_image_90") or ""),
            body=str(self.raw.get("description") or ""),
            footer="Dev.to Article Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(created),
            fields=[
                MessageField("# Reactions", str(self.raw.get("public_reactions_count") or 0)),
                MessageField("# Comments", str(self.raw.get("comments_count") or 0)),
            ],
            username="Dev.to Article Notifications",
            icon_emoji=":devto-rainbow:",
        )


class DevtoSource(Source):
    name = "devto"

    def fetch(self) -> list[Item]:
        articles = self._fetch_pages(self._fetch_page, first_page=1)
        return [DevtoArticle(article) for article in articles]

    def _fetch_page(self, page: int) -> list[dict[str, Any]]:
        payload = self._get_json(
            API_URL,
            params={"per_page": PAGE_SIZE, "page": page, "tag": self.tag},
        )
        return list(payload or [])


@register_source("devto")
def _build_devto_source(config: AppConfig) -> Source:
    return DevtoSource(config)
