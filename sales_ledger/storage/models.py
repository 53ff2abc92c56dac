"""
Data models for storage layer.

Defines ledger entities and aggregate results.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SaleRecord:
    """Immutable record of a single sale.

    Rows in the ``sales`` table are append-only. Corrections are new
    records, never edits of an existing one.
    """
    id: int
    seller_id: str
    seller_tag: str
    product: str
    amount: float
    commission: float
    timestamp: int
    notes: Optional[str] = None
    source: str = "webhook"


@dataclass(frozen=True)
class SalesSummary:
    """Aggregate totals over a closed timestamp interval."""
    count: int
    total_amount: float
    total_commission: float
