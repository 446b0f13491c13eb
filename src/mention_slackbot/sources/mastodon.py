from __future__ import annotations

from urllib.parse import quote

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds
from mention_slackbot.utils.text_utils import html_to_mrkdwn

from .base import Source
from .registry import register_source

ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/mastodon/18ff0c46d671d904.png"


class MastodonToot(Item):
    source_type = "mastodon"

    @property
    def natural_key(self) -> str:
        return str(self.raw["id"])

    @property
    def title(self) -> str:
        return "New toot on Mastodon!"

    def to_message(self) -> Message:
        account = self.raw.get("account") or {}
        link = str(self.raw.get("url") or self.raw.get("uri") or "")
        tags = ", ".join(
            f"#{tag.get('name')}" for tag in self.raw.get("tags") or [] if tag.get("name")
        )
        fields = [
            MessageField("# Boosts", str(self.raw.get("reblogs_count") or 0)),
            MessageField("# Favourites", str(self.raw.get("favourites_count") or 0)),
        ]
        if tags:
            fields.append(MessageField("Tags", tags))
        return Message(
            text=f"New toot on <{link}|Mastodon>",
            fallback="New toot on Mastodon!",
            title=self.title,
            title_link=link,
            author_name=str(account.get("acct") or account.get("username") or ""),
            author_link=str(account.get("url") or ""),
            author_icon=str(account.get("avatar_static") or account.get("avatar") or ""),
            body=html_to_mrkdwn(str(self.raw.get("content") or "")),
            footer="Mastodon Toot Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(self.raw.get("created_at")),
            fields=fields,
            username="Mastodon Toot Notifications",
            icon_emoji=":mastodon:",
        )


class MastodonSource(Source):
    """Latest statuses on the hashtag timeline; one request per run."""

    name = "mastodon"

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.instance = config.mastodon.instance

    def fetch(self) -> list[Item]:
        url = f"{self.instance}/api/v1/timelines/tag/{quote(self.tag.lstrip('#'), safe='')}"
        statuses = self._get_json(url, params={"limit": 40})
        return [MastodonToot(status) for status in statuses or []]


@register_source("mastodon")
def _build_mastodon_source(config: AppConfig) -> Source:
    return MastodonSource(config)
