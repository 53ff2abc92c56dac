"""
Unit tests for storage layer.

Tests schema creation, sale insertion, range aggregation and retrieval.
"""

import os
import sqlite3
import tempfile
from unittest.mock import patch

import pytest

from sales_ledger.errors import StorageError
from sales_ledger.storage.db import get_connection
from sales_ledger.storage.models import SalesSummary
from sales_ledger.storage.repository import (
    SalesRepository,
    fetch_recent_sales,
    initialize_schema,
    insert_sale,
    summarize_sales
)


def _insert(db_path, amount, commission, timestamp, product="Widget"):
    return insert_sale(
        "42", "alice", product, amount, commission, timestamp,
        None, "webhook", db_path=db_path
    )


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self, db_path):
        """Verify both tables are created with the expected columns."""
        conn = get_connection(db_path)
        try:
            cursor = conn.execute("""
                SELECT name FROM sqlite_master
                WHERE type='table' AND name IN ('sales', 'config')
                ORDER BY name
            """)
            assert [row[0] for row in cursor.fetchall()] == ["config", "sales"]

            cursor = conn.execute("PRAGMA table_info(sales)")
            column_names = [col[1] for col in cursor.fetchall()]
            assert column_names == [
                'id', 'seller_id', 'seller_tag', 'product', 'amount',
                'commission', 'timestamp', 'notes', 'source'
            ]
        finally:
            conn.close()

    def test_timestamp_index_exists(self, db_path):
        """Range queries by timestamp are backed by an index."""
        conn = get_connection(db_path)
        try:
            cursor = conn.execute("PRAGMA index_list(sales)")
            index_names = [row[1] for row in cursor.fetchall()]
            assert "idx_sales_timestamp" in index_names
        finally:
            conn.close()

    def test_default_rate_seeded(self, config_store):
        """First initialization stores the default commission rate."""
        assert config_store.get("commission_rate") == "10"

    def test_default_rate_not_reseeded(self, db_path, config_store):
        """Re-initializing keeps an operator-set rate."""
        config_store.set("commission_rate", "15")

        initialize_schema(db_path)

        assert config_store.get("commission_rate") == "15"

    def test_custom_default_rate(self):
        """A configured default is used on first startup."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "nested", "test.db")
            initialize_schema(db_path, default_commission_rate=7.5)

            from sales_ledger.storage.config_store import ConfigStore
            assert ConfigStore(db_path).get("commission_rate") == "7.5"


class TestSaleInsertion:
    """Test sale insertion operations."""

    def test_insert_returns_increasing_ids(self, db_path):
        first = _insert(db_path, 100.0, 10.0, 1_700_000_000)
        second = _insert(db_path, 200.0, 20.0, 1_700_000_001)

        assert second > first

    def test_insert_persists_all_fields(self, db_path):
        sale_id = insert_sale(
            "42", "alice#0001", "Widget", 250.0, 25.0, 1_700_000_000,
            "first order", "shop", db_path=db_path
        )

        sales = fetch_recent_sales(db_path=db_path)
        assert len(sales) == 1
        sale = sales[0]
        assert sale.id == sale_id
        assert sale.seller_id == "42"
        assert sale.seller_tag == "alice#0001"
        assert sale.product == "Widget"
        assert sale.amount == 250.0
        assert sale.commission == 25.0
        assert sale.timestamp == 1_700_000_000
        assert sale.notes == "first order"
        assert sale.source == "shop"

    def test_persistence_across_repositories(self, db_path):
        """Data written through one handle is visible through a new one."""
        _insert(db_path, 100.0, 10.0, 1_700_000_000)

        assert SalesRepository(db_path).count() == 1

    def test_storage_failure_raises_storage_error(self):
        """Writes against a database without a schema fail loudly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "empty.db")
            with pytest.raises(StorageError, match="Failed to insert sale"):
                _insert(db_path, 100.0, 10.0, 1_700_000_000)

    def test_unopenable_database_raises_storage_error(self):
        with patch("sales_ledger.storage.db.sqlite3.connect", side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(StorageError, match="Cannot open database"):
                get_connection("whatever.db")


class TestSummarize:
    """Test range aggregation."""

    def test_empty_window_returns_zeros(self, db_path):
        summary = summarize_sales(0, 2_000_000_000, db_path=db_path)

        assert summary == SalesSummary(count=0, total_amount=0.0, total_commission=0.0)
        assert summary.total_amount is not None
        assert summary.total_commission is not None

    def test_sums_records_in_window(self, db_path):
        _insert(db_path, 100.0, 10.0, 1_700_000_000)
        _insert(db_path, 200.0, 20.0, 1_700_000_100)
        _insert(db_path, 300.0, 30.0, 1_700_000_200)

        summary = summarize_sales(1_700_000_000, 1_700_000_200, db_path=db_path)

        assert summary.count == 3
        assert summary.total_amount == pytest.approx(600.0)
        assert summary.total_commission == pytest.approx(60.0)

    def test_window_is_closed_interval(self, db_path):
        """Records exactly at either bound are included."""
        _insert(db_path, 1.0, 0.1, 999)
        _insert(db_path, 10.0, 1.0, 1000)
        _insert(db_path, 20.0, 2.0, 2000)
        _insert(db_path, 2.0, 0.2, 2001)

        summary = summarize_sales(1000, 2000, db_path=db_path)

        assert summary.count == 2
        assert summary.total_amount == pytest.approx(30.0)
        assert summary.total_commission == pytest.approx(3.0)

    def test_repository_summarize(self, repository, db_path):
        _insert(db_path, 50.0, 5.0, 1_700_000_000)

        summary = repository.summarize(1_699_999_999, 1_700_000_001)

        assert summary.count == 1
        assert summary.total_amount == 50.0


class TestSaleRetrieval:
    """Test read-only listing."""

    def test_newest_first(self, db_path):
        _insert(db_path, 1.0, 0.1, 1_700_000_000, product="old")
        _insert(db_path, 2.0, 0.2, 1_700_000_500, product="new")

        sales = fetch_recent_sales(db_path=db_path)

        assert [sale.product for sale in sales] == ["new", "old"]

    def test_same_second_keeps_insertion_order(self, repository, db_path):
        _insert(db_path, 1.0, 0.1, 1_700_000_000, product="first")
        _insert(db_path, 2.0, 0.2, 1_700_000_000, product="second")

        sales = repository.recent()

        assert [sale.product for sale in sales] == ["second", "first"]

    def test_limit(self, db_path):
        for i in range(5):
            _insert(db_path, float(i), 0.0, 1_700_000_000 + i)

        assert len(fetch_recent_sales(limit=3, db_path=db_path)) == 3

    def test_empty_database(self, db_path):
        assert fetch_recent_sales(db_path=db_path) == []


class TestAppendOnlyNature:
    """Test that storage maintains append-only behavior."""

    def test_no_update_methods_exist(self):
        """Neither the module nor the repository exposes mutation of sales."""
        import sales_ledger.storage.repository as repo_module

        names = [name for name in dir(repo_module) if not name.startswith('_')]
        names += [name for name in dir(SalesRepository) if not name.startswith('_')]

        for name in names:
            assert 'update' not in name.lower()
            assert 'delete' not in name.lower()
            assert 'remove' not in name.lower()
            assert 'modify' not in name.lower()

    def test_sale_records_are_frozen(self, db_path):
        _insert(db_path, 100.0, 10.0, 1_700_000_000)
        sale = fetch_recent_sales(db_path=db_path)[0]

        with pytest.raises(AttributeError):
            sale.commission = 0.0
