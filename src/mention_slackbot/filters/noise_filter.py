from __future__ import annotations

from typing import Any

from mention_slackbot.config import TwitterSettings

from .base import Filter, FilterResult


class MicroblogNoiseFilter(Filter):
    """Drop microblog posts that mention the term only by coincidence.

    Expects a post record with ``text``, ``lang``, ``author`` (``username``,
    ``name``), ``mentions`` (list of users) and ``referenced_tweets``.
    """

    def __init__(self, term: str, settings: TwitterSettings) -> None:
        self.term = term.strip().lower()
        self.settings = settings

    def evaluate(self, record: Any) -> FilterResult:
        text = str(record.get("text") or "").lower()

        for word in self.settings.allow_words:
            if word in text:
                return FilterResult(matched=True, reasons=[f"allowed word: {word}"])

        language = str(record.get("lang") or "").lower()
        if language and language in self.settings.ignore_languages:
            return FilterResult(matched=False, reasons=[f"ignored language: {language}"])

        for word in self.settings.ignore_words:
            if word in text:
                return FilterResult(matched=False, reasons=[f"ignored word: {word}"])

        author = record.get("author") or {}
        username = str(author.get("username") or "").lower()
        if username in self.settings.ignore_authors:
            return FilterResult(matched=False, reasons=[f"ignored author: {username}"])

        if self.term in username or self.term in str(author.get("name") or "").lower():
            return FilterResult(matched=False, reasons=["term in author name"])

        for mention in record.get("mentions") or []:
            mention_names = (
                str(mention.get("username") or "").lower(),
                str(mention.get("name") or "").lower(),
            )
            if any(self.term in name for name in mention_names):
                return FilterResult(matched=False, reasons=["term in mentioned account"])

        for reference in record.get("referenced_tweets") or []:
            if reference.get("type") == "retweeted":
                return FilterResult(matched=False, reasons=["retweet"])

        return FilterResult(matched=True, reasons=["no ignore rule matched"])
