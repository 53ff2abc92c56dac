"""
Repository pattern for ledger access.

Handles schema setup, appends and range aggregates over the sales ledger.
"""

import sqlite3
from typing import List, Optional

from sales_ledger.errors import StorageError
from .db import get_connection
from .models import SaleRecord, SalesSummary

COMMISSION_RATE_KEY = "commission_rate"
DEFAULT_COMMISSION_RATE = 10

_SALE_COLUMNS = (
    "id, seller_id, seller_tag, product, amount, commission, "
    "timestamp, notes, source"
)


class SalesRepository:
    """Repository for reading and appending sales records.

    Holds only the database path; every call opens its own connection so
    the webhook and the CLI can share one database file.
    """

    def __init__(self, db_path: str = "sales.db"):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def insert(
        self,
        seller_id: str,
        seller_tag: str,
        product: str,
        amount: float,
        commission: float,
        timestamp: int,
        notes: Optional[str] = None,
        source: str = "webhook"
    ) -> int:
        """Append one sale and return its id."""
        return insert_sale(
            seller_id, seller_tag, product, amount, commission,
            timestamp, notes, source, db_path=self.db_path
        )

    def summarize(self, from_ts: int, to_ts: int) -> SalesSummary:
        """Aggregate sales with ``from_ts <= timestamp <= to_ts``."""
        return summarize_sales(from_ts, to_ts, db_path=self.db_path)

    def recent(self, limit: int = 10) -> List[SaleRecord]:
        """Return the newest sales first."""
        return fetch_recent_sales(limit=limit, db_path=self.db_path)

    def count(self) -> int:
        """Return the total number of recorded sales."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT COUNT(*) FROM sales").fetchone()
            return row[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count sales: {e}") from e
        finally:
            conn.close()


def initialize_schema(
    db_path: str = "sales.db",
    default_commission_rate: float = DEFAULT_COMMISSION_RATE
) -> None:
    """Create the ledger and config tables if they don't exist.

    The ``sales`` table is an append-only ledger: no UPDATE or DELETE is
    ever issued against it. The default commission rate is seeded only
    when no rate is stored yet, so restarts never overwrite an
    operator-set value.

    Args:
        db_path: Path to SQLite database file
        default_commission_rate: Rate written on first startup
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                seller_id TEXT,
                seller_tag TEXT,
                product TEXT NOT NULL,
                amount REAL NOT NULL,
                commission REAL NOT NULL,
                timestamp INTEGER NOT NULL,
                notes TEXT,
                source TEXT
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sales_timestamp ON sales (timestamp)"
        )
        conn.execute("""
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        conn.execute(
            "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
            (COMMISSION_RATE_KEY, _format_number(default_commission_rate))
        )
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"Failed to initialize schema: {e}") from e
    finally:
        conn.close()


def insert_sale(
    seller_id: str,
    seller_tag: str,
    product: str,
    amount: float,
    commission: float,
    timestamp: int,
    notes: Optional[str] = None,
    source: str = "webhook",
    db_path: str = "sales.db"
) -> int:
    """Insert a single sale into the append-only ledger.

    Business rules are not checked here; the ingestion gateway validates
    before calling.

    Returns:
        The id assigned to the new record

    Raises:
        StorageError: If the write fails
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            INSERT INTO sales
            (seller_id, seller_tag, product, amount, commission,
             timestamp, notes, source)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            seller_id,
            seller_tag,
            product,
            amount,
            commission,
            timestamp,
            notes,
            source
        ))
        conn.commit()
        return cursor.lastrowid
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"Failed to insert sale: {e}") from e
    finally:
        conn.close()


def summarize_sales(
    from_ts: int,
    to_ts: int,
    db_path: str = "sales.db"
) -> SalesSummary:
    """Aggregate count and sums over the closed interval ``[from_ts, to_ts]``.

    A single SELECT, so the result reflects one consistent snapshot.
    SQL ``SUM`` yields NULL for an empty set; it is normalized to 0.0.

    Args:
        from_ts: Inclusive lower bound, seconds since epoch
        to_ts: Inclusive upper bound, seconds since epoch
        db_path: Path to SQLite database file

    Returns:
        SalesSummary with zeroed totals when nothing matches
    """
    conn = get_connection(db_path)
    try:
        row = conn.execute("""
            SELECT
                COUNT(*) AS tx_count,
                SUM(amount) AS total_amount,
                SUM(commission) AS total_commission
            FROM sales
            WHERE timestamp BETWEEN ? AND ?
        """, (from_ts, to_ts)).fetchone()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to summarize sales: {e}") from e
    finally:
        conn.close()

    return SalesSummary(
        count=row[0] or 0,
        total_amount=float(row[1] or 0),
        total_commission=float(row[2] or 0)
    )


def fetch_recent_sales(
    limit: int = 10,
    db_path: str = "sales.db"
) -> List[SaleRecord]:
    """Fetch the most recent sales, newest first.

    Ordered by id as well as timestamp so that sales recorded within the
    same second keep their insertion order.
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            f"SELECT {_SALE_COLUMNS} FROM sales "
            "ORDER BY timestamp DESC, id DESC LIMIT ?",
            (limit,)
        )
        rows = cursor.fetchall()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to fetch sales: {e}") from e
    finally:
        conn.close()

    return [
        SaleRecord(
            id=row[0],
            seller_id=row[1],
            seller_tag=row[2],
            product=row[3],
            amount=row[4],
            commission=row[5],
            timestamp=row[6],
            notes=row[7],
            source=row[8]
        )
        for row in rows
    ]


def _format_number(value: float) -> str:
    # 10.0 is stored as "10" to match values written by operators
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return str(number)
