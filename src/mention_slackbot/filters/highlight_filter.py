from __future__ import annotations

from typing import Any

from mention_slackbot.utils.text_utils import strip_highlight

from .base import Filter, FilterResult


class HighlightMatchFilter(Filter):
    """Only trust search highlights that are exact substrings of the term.

    Search backends with typo tolerance mark near-misses as matches. A hit is
    kept when every highlighted field with matched words contains the search
    term (case-insensitive). Fields with no matched words are not checked.
    """

    def __init__(self, term: str, *, highlight_key: str = "_highlightResult") -> None:
        self.term = term.strip().lower()
        self.highlight_key = highlight_key

    def evaluate(self, record: Any) -> FilterResult:
        highlights = record.get(self.highlight_key) or {}
        if not isinstance(highlights, dict):
            return FilterResult(matched=True, reasons=["no highlight data"])

        checked: list[str] = []
        for field_name, highlight in highlights.items():
            if not isinstance(highlight, dict) or not highlight.get("matchedWords"):
                continue
            value = strip_highlight(str(highlight.get("value") or "")).lower()
            if self.term not in value:
                return FilterResult(
                    matched=False,
                    reasons=[f"fuzzy match on {field_name} does not contain '{self.term}'"],
                )
            checked.append(field_name)

        if not checked:
            return FilterResult(matched=True, reasons=["no highlighted matches"])
        return FilterResult(matched=True, reasons=[f"exact match in: {', '.join(checked)}"])
