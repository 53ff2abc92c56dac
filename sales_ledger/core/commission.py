"""
Commission calculation and rate management.

Commission is ``amount * rate / 100`` rounded half-up to the cent.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sales_ledger.errors import ValidationError
from sales_ledger.storage.config_store import ConfigStore
from sales_ledger.storage.repository import COMMISSION_RATE_KEY

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal, or zero.

    Goes through ``str`` so floats keep their shortest decimal form
    (``1.005`` stays ``1.005`` rather than its binary expansion).
    Missing, non-numeric and non-finite inputs become zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not number.is_finite():
        return Decimal(0)
    return number


def calculate_commission(amount: Any, rate_percent: Any) -> float:
    """Calculate commission owed on a sale.

    Never raises: bad inputs count as zero so ingestion stays permissive.

    Args:
        amount: Sale amount
        rate_percent: Commission rate in percent (10 means 10%)

    Returns:
        Commission rounded half-up to 2 decimal places
    """
    commission = to_decimal(amount) * to_decimal(rate_percent) / Decimal(100)
    return float(commission.quantize(CENT, rounding=ROUND_HALF_UP))


def set_commission_rate(config_store: ConfigStore, rate_percent: Any) -> float:
    """Store a new commission rate for all future sales.

    Out-of-range values (negative, above 100) are accepted as given.
    Already recorded sales keep the commission they were stored with.

    Args:
        config_store: Store holding the rate
        rate_percent: New rate in percent

    Returns:
        The rate as stored

    Raises:
        ValidationError: If the rate is not a finite number
    """
    try:
        rate = Decimal(str(rate_percent).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Commission rate must be numeric, got {rate_percent!r}")
    if isinstance(rate_percent, bool) or not rate.is_finite():
        raise ValidationError(f"Commission rate must be numeric, got {rate_percent!r}")

    config_store.set(COMMISSION_RATE_KEY, _normalize(rate))
    return float(rate)


def _normalize(rate: Decimal) -> str:
    # "15.0" and "15" store identically so repeated sets are no-ops
    if rate == rate.to_integral_value():
        return str(int(rate))
    return str(rate.normalize())
