from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

import requests

from mention_slackbot.config import AppConfig
from mention_slackbot.models import Item

logger = logging.getLogger(__name__)

USER_AGENT = "mention-slackbot/0.1 (+https://github.com/)"


class SourceError(RuntimeError):
    """Raised when an upstream API returns an error payload."""


class Source(ABC):
    name: str = ""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.tag = config.tag
        self.timeout_seconds = config.http.timeout_seconds

    @abstractmethod
    def fetch(self) -> list[Item]:
        """Fetch, filter and wrap every matching upstream record."""

    def is_configured(self) -> bool:
        """False when the source lacks credentials and should be skipped."""
        return True

    def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        request_headers = {"User-Agent": USER_AGENT}
        if headers:
            request_headers.update(headers)
        response = requests.get(
            url,
            params=params,
            headers=request_headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response

    def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = self._get(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(f"{self.name}: invalid JSON from {url}: {exc}") from exc

    def _fetch_pages(
        self,
        fetch_page: Callable[[int], list[Any]],
        *,
        first_page: int = 1,
    ) -> list[Any]:
        """Request pages ``first_page, first_page + 1, ...`` until one comes back empty."""
        results: list[Any] = []
        page = first_page
        while True:
            logger.info("Fetching page | source=%s page=%d", self.name, page)
            records = fetch_page(page)
            page += 1
            if not records:
                break
            results.extend(records)
        return results
