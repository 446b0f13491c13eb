from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

DEFAULT_COLOR = "#36a64f"


@dataclass(slots=True)
class MessageField:
    title: str
    value: str
    short: bool = True


@dataclass(slots=True)
class Message:
    text: str
    fallback: str
    title: str
    title_link: str
    footer: str
    footer_icon: str
    username: str
    icon_emoji: str
    author_name: str = ""
    author_link: str = ""
    author_icon: str = ""
    body: str = ""
    ts: int | None = None
    fields: list[MessageField] = field(default_factory=list)
    color: str = DEFAULT_COLOR


class Item(ABC):
    """A fetched upstream record that can be deduped and announced.

    Adapters keep the decoded payload in ``raw`` and expose only what the
    pipeline needs: a natural key for the dedup store, a display title and
    the chat message to post.
    """

    source_type: str = ""

    def __init__(self, raw: Any) -> None:
        self.raw = raw

    @property
    @abstractmethod
    def natural_key(self) -> str | int:
        """Upstream identifier, unique within ``source_type``."""

    @property
    def title(self) -> str:
        return ""

    @abstractmethod
    def to_message(self) -> Message:
        """Build the chat message announcing this item."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(natural_key={self.natural_key!r})"
