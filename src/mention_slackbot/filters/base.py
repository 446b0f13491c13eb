from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class FilterResult:
    matched: bool
    reasons: list[str] = field(default_factory=list)

    def reason_text(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "no specific reason"


class Filter(ABC):
    @abstractmethod
    def evaluate(self, record: Any) -> FilterResult:
        """Evaluate a decoded upstream record and return keep decision with reasons."""

    def matches(self, record: Any) -> bool:
        return self.evaluate(record).matched
