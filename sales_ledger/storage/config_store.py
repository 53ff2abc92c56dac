"""
Durable key/value store for scalar settings.

Backs the ``config`` table. Values are stored as strings; writes are
last-write-wins upserts with no compare-and-swap.
"""

import math
import sqlite3
from typing import Any, Optional

from sales_ledger.errors import StorageError
from .db import get_connection
from .repository import COMMISSION_RATE_KEY, DEFAULT_COMMISSION_RATE


class ConfigStore:
    """Handle on the persisted configuration entries."""

    def __init__(self, db_path: str = "sales.db"):
        self.db_path = db_path

    def get(self, key: str, fallback: Optional[Any] = None) -> Optional[Any]:
        """Return the stored value for ``key`` or ``fallback`` if absent.

        Raises:
            StorageError: If the read fails
        """
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM config WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read config '{key}': {e}") from e
        finally:
            conn.close()
        return row[0] if row else fallback

    def set(self, key: str, value: Any) -> None:
        """Upsert ``key`` to ``str(value)``.

        Raises:
            StorageError: If the write fails
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                "INSERT INTO config (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, str(value))
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to write config '{key}': {e}") from e
        finally:
            conn.close()

    def ensure_default(self, key: str, value: Any) -> bool:
        """Write ``value`` only if ``key`` has no value yet.

        Returns:
            True if the default was written, False if a value already existed
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
                (key, str(value))
            )
            conn.commit()
            return cursor.rowcount == 1
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to seed config '{key}': {e}") from e
        finally:
            conn.close()

    def get_commission_rate(
        self,
        fallback: float = DEFAULT_COMMISSION_RATE
    ) -> float:
        """Current commission rate in percent.

        Falls back when the key is missing or holds a non-numeric or
        non-finite value.
        """
        raw = self.get(COMMISSION_RATE_KEY)
        if raw is None:
            return float(fallback)
        try:
            rate = float(raw)
        except ValueError:
            return float(fallback)
        if not math.isfinite(rate):
            return float(fallback)
        return rate
