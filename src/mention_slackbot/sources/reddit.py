from __future__ import annotations

from typing import Any
from urllib.parse import quote

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds
from mention_slackbot.utils.text_utils import truncate

from .base import Source
from .registry import register_source

SEARCH_URL = "https://www.reddit.com/search.json"
SUBREDDIT_URL = "https://www.reddit.com/r/{}/new.json"
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/reddit/42103923a0791a10.png"
# Reddit throttles generic client user agents hard.
REDDIT_USER_AGENT = "python:mention-slackbot:0.1 (notification bot)"


class RedditPost(Item):
    source_type = "reddit"

    @property
    def natural_key(self) -> str:
        return self.post_id

    @property
    def post_id(self) -> str:
        """Base36 id, taken from the ``t3_<id>`` fullname when present."""
        fullname = str(self.raw.get("name") or "")
        if "_" in fullname:
            return fullname.split("_", 1)[1]
        return str(self.raw["id"])

    @property
    def title(self) -> str:
        return str(self.raw.get("title") or "")

    @property
    def link(self) -> str:
        subreddit = str(self.raw.get("subreddit") or "")
        return f"https://www.reddit.com/r/{subreddit}/comments/{self.post_id}/"

    def to_message(self) -> Message:
        author = str(self.raw.get("author") or "")
        fields = [
            MessageField("Subreddit", f"/r/{self.raw.get('subreddit', '')}"),
            MessageField("# Points", str(self.raw.get("score") or 0)),
            MessageField("# Comments", str(self.raw.get("num_comments") or 0)),
        ]
        external_url = str(self.raw.get("url") or "")
        if external_url and not self.raw.get("is_self") and "reddit.com" not in external_url:
            fields.append(MessageField("Original Link", external_url))
        return Message(
            text=f"New post on <{self.link}|Reddit>",
            fallback="New post on Reddit!",
            title=self.title,
            title_link=self.link,
            author_name=author,
            author_link=f"https://www.reddit.com/user/{author}/",
            body=truncate(str(self.raw.get("selftext") or ""), 500),
            footer="Reddit Post Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(self.raw.get("created_utc")),
            fields=fields,
            username="Reddit Post Notifications",
            icon_emoji=":reddit:",
        )


class SubredditPost(RedditPost):
    source_type = "reddit_subreddit"


class _RedditListingSource(Source):
    item_class: type[RedditPost] = RedditPost

    def _fetch_listing(self, url: str, params: dict[str, Any]) -> list[Item]:
        payload = self._get_json(url, params=params, headers={"User-Agent": REDDIT_USER_AGENT})
        children = (payload.get("data") or {}).get("children") or []
        return [
            self.item_class(child["data"])
            for child in children
            if isinstance(child, dict) and child.get("data")
        ]


class RedditSearchSource(_RedditListingSource):
    """Newest link posts across Reddit mentioning the term; one request per run."""

    name = "reddit"
    item_class = RedditPost

    def fetch(self) -> list[Item]:
        return self._fetch_listing(
            SEARCH_URL,
            {"q": self.tag, "type": "link", "sort": "new", "limit": 100},
        )


class SubredditSource(_RedditListingSource):
    """Newest 100 posts of the subreddit named after the term."""

    name = "reddit_subreddit"
    item_class = SubredditPost

    def fetch(self) -> list[Item]:
        return self._fetch_listing(
            SUBREDDIT_URL.format(quote(self.tag, safe="")),
            {"limit": 100},
        )


@register_source("reddit")
def _build_reddit_source(config: AppConfig) -> Source:
    return RedditSearchSource(config)


@register_source("reddit_subreddit")
def _build_subreddit_source(config: AppConfig) -> Source:
    return SubredditSource(config)
