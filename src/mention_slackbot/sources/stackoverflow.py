from __future__ import annotations

import html as html_lib
import logging
from typing import Any

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds

from .base import Source, SourceError
from .registry import register_source

logger = logging.getLogger(__name__)

API_URL = "https://api.stackexchange.com/2.3/questions"
PAGE_SIZE = 100
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/stackoverflow/35cab7f857fa4681.png"


class StackOverflowQuestion(Item):
    source_type = "stackoverflow"

    @property
    def natural_key(self) -> int:
        return int(self.raw["question_id"])

    @property
    def title(self) -> str:
        return html_lib.unescape(str(self.raw.get("title") or ""))

    def to_message(self) -> Message:
        owner = self.raw.get("owner") or {}
        link = str(self.raw.get("link") or "")
        answered = "✅" if self.raw.get("is_answered") else "\U0001f6ab"
        return Message(
            text=f"New question on <{link}|StackOverflow>",
            fallback="New question on StackOverflow!",
            title=self.title,
            title_link=link,
            author_name=html_lib.unescape(str(owner.get("display_name") or "")),
            author_link=str(owner.get("link") or ""),
            author_icon=str(owner.get("profile_image") or ""),
            footer="Stackoverflow Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(self.raw.get("creation_date")),
            fields=[
                MessageField("# Views", str(self.raw.get("view_count", 0))),
                MessageField("# Answers", str(self.raw.get("answer_count", 0))),
                MessageField("Answered", answered),
                MessageField("Tags", ", ".join(self.raw.get("tags") or [])),
            ],
            username="StackOverflow Question Notifications",
            icon_emoji=":stackoverflow:",
        )


class StackOverflowSource(Source):
    name = "stackoverflow"

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.site = config.site

    def fetch(self) -> list[Item]:
        questions = self._fetch_pages(self._fetch_page, first_page=1)
        return [StackOverflowQuestion(question) for question in questions]

    def _fetch_page(self, page: int) -> list[dict[str, Any]]:
        payload = self._get_json(
            API_URL,
            params={
                "tagged": self.tag,
                "site": self.site,
                "page": page,
                "pagesize": PAGE_SIZE,
                "sort": "creation",
                "order": "asc",
            },
        )
        if "error_id" in payload:
            raise SourceError(
                f"stackexchange error {payload.get('error_id')}: "
                f"{payload.get('error_name', '')} {payload.get('error_message', '')}".strip()
            )
        if payload.get("quota_remaining") is not None:
            logger.debug("StackExchange quota remaining=%s", payload["quota_remaining"])
        return list(payload.get("items") or [])


@register_source("stackoverflow")
def _build_stackoverflow_source(config: AppConfig) -> Source:
    return StackOverflowSource(config)
