"""
Shared fixtures.
"""

import os
import sys
import tempfile

import pytest
from loguru import logger

from sales_ledger.storage.config_store import ConfigStore
from sales_ledger.storage.repository import SalesRepository, initialize_schema


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore loguru's default sink after each test.

    CLI tests reconfigure logging against the runner's captured stderr.
    """
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def db_path():
    """Path to a freshly initialized ledger database."""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "test.db")
        initialize_schema(path)
        yield path


@pytest.fixture
def repository(db_path):
    return SalesRepository(db_path)


@pytest.fixture
def config_store(db_path):
    return ConfigStore(db_path)


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)
