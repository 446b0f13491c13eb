from __future__ import annotations

import html as html_lib
import re

_ANCHOR = re.compile(
    r"<a\s[^>]*href=\"([^\"]+)\"[^>]*>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)
_BREAK_TAGS = re.compile(r"</?(?:br|p|li|div|tr|h\d|ul|ol|table|blockquote)[^>]*>", re.IGNORECASE)
_EMPHASIS = re.compile(r"</?(?:strong|b)>", re.IGNORECASE)
_ITALIC = re.compile(r"</?(?:em|i)>", re.IGNORECASE)
_HIGHLIGHT = re.compile(r"</?em>", re.IGNORECASE)
_HTML_TAGS = re.compile(r"<[^>]+>")
# Only real markup; leaves already rendered <url|label> links alone.
_MARKUP_TAGS = re.compile(r"</?[a-zA-Z][a-zA-Z0-9]*(?:\s[^>]*)?/?>")
_MULTISPACE = re.compile(r"[ \t\r\f\v]+")
_MULTINEWLINE = re.compile(r"\n{3,}")


def html_to_mrkdwn(value: str) -> str:
    """Convert status/post HTML to Slack mrkdwn.

    Links become ``<url|label>``, bold and italic map to ``*`` and ``_``; all
    other markup is dropped.
    """
    text = _ANCHOR.sub(_render_anchor, value or "")
    text = _EMPHASIS.sub("*", text)
    text = _ITALIC.sub("_", text)
    text = _BREAK_TAGS.sub("\n", text)
    text = _MARKUP_TAGS.sub("", text)
    return _tidy(html_lib.unescape(text))


def strip_highlight(value: str) -> str:
    """Remove search highlight markup (``<em>``) from a highlighted value."""
    return _HIGHLIGHT.sub("", value or "")


def normalize_whitespace(value: str) -> str:
    return " ".join((value or "").split())


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return f"{value[: limit - 3]}..."


def _render_anchor(match: re.Match[str]) -> str:
    href = html_lib.unescape(match.group(1))
    label = normalize_whitespace(html_lib.unescape(_HTML_TAGS.sub("", match.group(2))))
    if not label or label == href:
        return f"<{href}>"
    return f"<{href}|{label}>"


def _tidy(text: str) -> str:
    lines = [_MULTISPACE.sub(" ", line).strip() for line in text.split("\n")]
    return _MULTINEWLINE.sub("\n\n", "\n".join(lines)).strip()
