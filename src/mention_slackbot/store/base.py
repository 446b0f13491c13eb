from __future__ import annotations

from abc import ABC, abstractmethod


class StoreError(RuntimeError):
    """Raised when the dedup store cannot be read or written."""


class Store(ABC):
    @abstractmethod
    def init_db(self) -> None:
        """Prepare the storage location."""

    @abstractmethod
    def ensure_schema(self, source_type: str) -> None:
        """Idempotently create the seen-item table for ``source_type``."""

    @abstractmethod
    def exists(self, source_type: str, natural_key: str | int) -> bool:
        """Return True if the key was already recorded for ``source_type``."""

    @abstractmethod
    def insert(self, source_type: str, natural_key: str | int, title: str | None) -> None:
        """Record a newly seen item. Duplicate keys raise ``StoreError``."""
