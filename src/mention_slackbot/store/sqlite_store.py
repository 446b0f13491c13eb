from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path

from .base import Store, StoreError

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


class SQLiteStore(Store):
    """One append-only ``(id, natural_key, title)`` table per source type."""

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)

    def init_db(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"cannot create database directory for {self.db_path}: {exc}") from exc

    def ensure_schema(self, source_type: str) -> None:
        table = _table_name(source_type)
        try:
            with self._connect() as connection:
                connection.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        natural_key TEXT NOT NULL UNIQUE,
                        title TEXT NULL
                    )
                    """
                )
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"error preparing table {table}: {exc}") from exc
        logger.debug("Schema ready | table=%s path=%s", table, self.db_path)

    def exists(self, source_type: str, natural_key: str | int) -> bool:
        table = _table_name(source_type)
        try:
            with self._connect() as connection:
                row = connection.execute(
                    f"SELECT 1 FROM {table} WHERE natural_key = ?",
                    (_normalize_key(natural_key),),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"error reading {table} for key {natural_key!r}: {exc}") from exc
        return row is not None

    def insert(self, source_type: str, natural_key: str | int, title: str | None) -> None:
        table = _table_name(source_type)
        try:
            with self._connect() as connection:
                connection.execute(
                    f"INSERT INTO {table} (natural_key, title) VALUES (?, ?)",
                    (_normalize_key(natural_key), title),
                )
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"error inserting key {natural_key!r} into {table}: {exc}") from exc

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        return connection


def _table_name(source_type: str) -> str:
    if not _TABLE_NAME.match(source_type):
        raise StoreError(f"invalid source type for table name: {source_type!r}")
    return f"seen_{source_type}"


def _normalize_key(natural_key: str | int) -> str:
    return str(natural_key).strip()
