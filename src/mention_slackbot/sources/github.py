from __future__ import annotations

import logging
from typing import Any

import requests

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item, Message, MessageField
from mention_slackbot.utils.datetime_utils import to_epoch_seconds

from .base import Source
from .registry import register_source

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com/search/repositories"
PAGE_SIZE = 100
ICON_URL = "https://emoji.slack-edge.com/T085AJH3L/github/eeab46c8e8ba02f7.png"


class GithubRepository(Item):
    source_type = "github"

    @property
    def natural_key(self) -> int:
        return int(self.raw["id"])

    @property
    def title(self) -> str:
        return str(self.raw.get("full_name") or "")

    def to_message(self) -> Message:
        owner = self.raw.get("owner") or {}
        link = str(self.raw.get("html_url") or "")
        fields = [MessageField("Language", str(self.raw.get("language") or "Unknown"))]
        stars = self.raw.get("stargazers_count")
        if stars is not None:
            fields.append(MessageField("# Stars", str(stars)))
        return Message(
            text=f"New repository on <{link}|Github>",
            fallback="New repository on Github!",
            title=self.title,
            title_link=link,
            author_name=str(owner.get("login") or ""),
            author_link=str(owner.get("html_url") or ""),
            author_icon=str(owner.get("avatar_url") or ""),
            body=str(self.raw.get("description") or ""),
            footer="Github Repository Notification",
            footer_icon=ICON_URL,
            ts=to_epoch_seconds(self.raw.get("created_at")),
            fields=fields,
            username="Github Repository Notifications",
            icon_emoji=":github:",
        )


class GithubRepositorySource(Source):
    name = "github"

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.headers = {"Accept": "application/vnd.github+json"}
        if config.github.token:
            self.headers["Authorization"] = f"Bearer {config.github.token}"

    def fetch(self) -> list[Item]:
        repositories = self._fetch_pages(self._fetch_page, first_page=1)
        return [GithubRepository(repository) for repository in repositories]

    def _fetch_page(self, page: int) -> list[dict[str, Any]]:
        try:
            payload = self._get_json(
                API_URL,
                params={
                    "q": self.tag,
                    "per_page": PAGE_SIZE,
                    "page": page,
                    "sort": "updated",
                },
                headers=self.headers,
            )
        except requests.HTTPError as exc:
            # Search only serves the first 1000 results; later pages are 422.
            if exc.response is not None and exc.response.status_code == 422:
                logger.warning("Github search window exhausted | page=%d", page)
                return []
            raise
        if payload.get("incomplete_results"):
            logger.warning("Github search returned incomplete results | page=%d", page)
        return list(payload.get("items") or [])


@register_source("github")
def _build_github_source(config: AppConfig) -> Source:
    return GithubRepositorySource(config)
