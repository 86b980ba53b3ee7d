"""Key-value storage capability backing the Corpus Store.

The corpus lives in a single slot under a fixed key. This module provides the
get/set capability for that slot: a SQLite-backed implementation for the
running application and an in-memory one for tests and ephemeral runs.
"""

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from clerk.error_handling import CorpusStoreError


class KeyValueStore(ABC):
    """Abstract keyed blob storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under ``key`` or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Overwrite the blob stored under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    def close(self) -> None:
        """Release any underlying resources."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store; contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value store persisted in a local SQLite file.

    Each operation opens its own connection, so the store holds no open
    handle between calls.
    """

    def __init__(self, db_path: str = "judicial_corpus.db"):
        """Initialize the store and create its table if needed.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._ensure_database_exists()
        logger.info(f"SQLiteKeyValueStore initialized with db_path={db_path}")

    def _ensure_database_exists(self):
        """Create database and table if they don't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to read key {key}: {e}")
            raise CorpusStoreError(f"Failed to read key {key}: {e}") from e

        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                """, (key, value, datetime.now(timezone.utc).isoformat()))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to write key {key}: {e}")
            raise CorpusStoreError(f"Failed to write key {key}: {e}") from e

        logger.debug(f"Stored {len(value)} characters under {key}")

    def delete(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to delete key {key}: {e}")
            raise CorpusStoreError(f"Failed to delete key {key}: {e}") from e
