from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from mention_slackbot.config import AppConfig
from mention_slackbot.filters import MicroblogNoiseFilter
from mention_slackbot.models import Item, Message
from mention_slackbot.utils.datetime_utils import to_epoch_seconds

from .base import Source, SourceError
from .registry import register_source

logger = logging.getLogger(__name__)

API_URL = "https://api.twitter.com/2/tweets/search/recent"
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/twitter/290f7fdbde70c82d.png"
LOOKBACK = timedelta(days=1)


class Tweet(Item):
    """A tweet with its ``author`` and ``mentions`` resolved from the includes."""

    source_type = "twitter"

    @property
    def natural_key(self) -> str:
        return str(self.raw["id"])

    @property
    def title(self) -> str:
        return str(self.raw.get("text") or "")

    @property
    def username(self) -> str:
        return str((self.raw.get("author") or {}).get("username") or "")

    def to_message(self) -> Message:
        link = f"https://twitter.com/{self.username}/status/{self.natural_key}"
        return Message(
            text=f"New tweet on <{link}|Twitter>",
            fallback="New tweet on Twitter!",
            title=self.title,
            title_link=link,
            author_name=self.username,
            author_link=f"https://twitter.com/{self.username}",
            author_icon=str((self.raw.get("author") or {}).get("profile_image_url") or ""),
            footer="Twitter Tweet Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(self.raw.get("created_at")),
            username="Twitter Tweet Notifications",
            icon_emoji=":twitter:",
        )


class TwitterSource(Source):
    """Recent-search over the last day, capped at 100 tweets, with noise filtering."""

    name = "twitter"

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.bearer_token = config.twitter.bearer_token
        self.noise_filter = MicroblogNoiseFilter(config.tag, config.twitter)

    def is_configured(self) -> bool:
        return bool(self.bearer_token)

    def fetch(self) -> list[Item]:
        start_time = datetime.now(timezone.utc) - LOOKBACK
        payload = self._get_json(
            API_URL,
            params={
                "query": self.tag,
                "max_results": 100,
                "start_time": start_time.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "expansions": "author_id,entities.mentions.username,referenced_tweets.id",
                "tweet.fields": "created_at,conversation_id,attachments,lang,entities,referenced_tweets",
                "user.fields": "username,name,profile_image_url",
            },
            headers={"Authorization": f"Bearer {self.bearer_token}"},
        )
        if "data" not in payload and payload.get("errors"):
            raise SourceError(f"twitter search failed: {payload['errors']}")

        items: list[Item] = []
        for record in _resolve_users(payload):
            result = self.noise_filter.evaluate(record)
            if not result.matched:
                logger.debug(
                    "Skipping tweet | key=%s reason=%s", record.get("id"), result.reason_text()
                )
                continue
            items.append(Tweet(record))
        return items


def _resolve_users(payload: dict[str, Any]) -> list[dict[str, Any]]:
    users = (payload.get("includes") or {}).get("users") or []
    by_id = {str(user.get("id")): user for user in users}
    by_username = {str(user.get("username") or "").lower(): user for user in users}

    records: list[dict[str, Any]] = []
    for tweet in payload.get("data") or []:
        mentions = []
        for mention in (tweet.get("entities") or {}).get("mentions") or []:
            username = str(mention.get("username") or "")
            user = by_id.get(str(mention.get("id"))) or by_username.get(username.lower()) or {}
            mentions.append({"username": username, "name": user.get("name", "")})
        records.append(
            {
                **tweet,
                "author": by_id.get(str(tweet.get("author_id")), {}),
                "mentions": mentions,
            }
        )
    return records


@register_source("twitter")
def _build_twitter_source(config: AppConfig) -> Source:
    return TwitterSource(config)
