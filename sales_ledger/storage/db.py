"""
Database connection management.

Provides the SQLite connection backing the ledger and config store.
"""

import sqlite3
from pathlib import Path

from sales_ledger.errors import StorageError


def get_connection(db_path: str = "sales.db") -> sqlite3.Connection:
    """Create and return a SQLite connection for the ledger database.

    The parent directory is created on first use so a fresh deployment
    can point at ``data/sales.db`` without preparing it.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection

    Raises:
        StorageError: If the database cannot be opened
    """
    path = Path(db_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path), timeout=5.0)
    except (OSError, sqlite3.Error) as e:
        raise StorageError(f"Cannot open database {db_path}: {e}") from e
    return conn
