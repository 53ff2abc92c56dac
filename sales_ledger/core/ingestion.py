"""
Sale ingestion.

Validates inbound sale submissions, computes their commission and appends
them to the ledger.

Processing Order:
1. Shared secret check - nothing else is looked at on mismatch
2. Required fields - product must be non-empty, amount must be present;
   text fields must be scalars
3. Commission at the currently stored rate
4. Append to the ledger with an ingestion-time timestamp
"""

import hmac
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger

from sales_ledger.errors import AuthorizationError, ValidationError
from sales_ledger.storage.config_store import ConfigStore
from sales_ledger.storage.repository import DEFAULT_COMMISSION_RATE, SalesRepository
from .commission import calculate_commission, to_decimal

UNKNOWN_SELLER_ID = "unknown"
EXTERNAL_SELLER_TAG = "external"
WEBHOOK_SOURCE = "webhook"
MANUAL_SOURCE = "manual"

SCALAR_TYPES = (str, int, float, bool)
TEXT_FIELDS = ("product", "seller_id", "seller_tag", "notes", "source")


@dataclass(frozen=True)
class SaleSubmission:
    """One inbound sale as received from an adapter."""
    product: Optional[str]
    amount: Any
    secret: Optional[str] = None
    seller_id: Optional[str] = None
    seller_tag: Optional[str] = None
    notes: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SaleSubmission":
        """Build a submission from a JSON-shaped dict.

        Unknown keys, including any caller-supplied timestamp, are ignored.
        """
        return cls(
            product=payload.get("product"),
            amount=payload.get("amount"),
            secret=payload.get("secret"),
            seller_id=payload.get("seller_id"),
            seller_tag=payload.get("seller_tag"),
            notes=payload.get("notes"),
            source=payload.get("source"),
        )


@dataclass(frozen=True)
class IngestionReceipt:
    """Acknowledgement of a recorded sale."""
    sale_id: int
    commission: float
    rate: float
    timestamp: int


class IngestionGateway:
    """Entry point for recording sales.

    Rate lookup and insert are separate statements: a rate change racing
    with an ingestion may apply either rate.
    """

    def __init__(
        self,
        repository: SalesRepository,
        config_store: ConfigStore,
        webhook_secret: str,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the gateway.

        Args:
            repository: Ledger to append to
            config_store: Store holding the commission rate
            webhook_secret: Shared secret expected on webhook submissions
            clock: Wall-clock source in seconds since epoch
        """
        self.repository = repository
        self.config_store = config_store
        self.webhook_secret = webhook_secret
        self.clock = clock

    def ingest(self, submission: SaleSubmission) -> IngestionReceipt:
        """Record a sale received from the webhook.

        Raises:
            AuthorizationError: If the secret does not match
            ValidationError: If product or amount is missing, or a text
                field holds a JSON object or list
            StorageError: If the rate read or ledger write fails
        """
        if not _secret_matches(submission.secret, self.webhook_secret):
            logger.warning("Rejected sale submission: invalid secret")
            raise AuthorizationError("Invalid secret")

        return self._record(submission, default_source=WEBHOOK_SOURCE)

    def record_sale(
        self,
        product: Optional[str],
        amount: Any,
        seller_id: Optional[str] = None,
        seller_tag: Optional[str] = None,
        notes: Optional[str] = None,
        source: Optional[str] = None
    ) -> IngestionReceipt:
        """Record a sale entered by an operator.

        Same validation and commission rules as the webhook, without the
        shared secret check.
        """
        submission = SaleSubmission(
            product=product,
            amount=amount,
            seller_id=seller_id,
            seller_tag=seller_tag,
            notes=notes,
            source=source,
        )
        return self._record(submission, default_source=MANUAL_SOURCE)

    def _record(
        self,
        submission: SaleSubmission,
        default_source: str
    ) -> IngestionReceipt:
        _validate(submission)

        rate = self.config_store.get_commission_rate(fallback=DEFAULT_COMMISSION_RATE)
        commission = calculate_commission(submission.amount, rate)
        amount = float(to_decimal(submission.amount))
        timestamp = int(self.clock())

        sale_id = self.repository.insert(
            seller_id=_text(submission.seller_id) or UNKNOWN_SELLER_ID,
            seller_tag=_text(submission.seller_tag) or EXTERNAL_SELLER_TAG,
            product=_text(submission.product),
            amount=amount,
            commission=commission,
            timestamp=timestamp,
            notes=_text(submission.notes) or None,
            source=_text(submission.source) or default_source,
        )

        logger.bind(sale_id=sale_id).info(
            f"Sale logged: {submission.product} for {amount} ({commission})"
        )
        return IngestionReceipt(
            sale_id=sale_id,
            commission=commission,
            rate=rate,
            timestamp=timestamp,
        )


def _validate(submission: SaleSubmission) -> None:
    """Reject submissions missing a product or an amount.

    An amount of 0 is present and therefore accepted.
    """
    product = submission.product
    if product is None or not str(product).strip():
        logger.warning("Rejected sale submission: missing product")
        raise ValidationError("Missing product or amount")

    amount = submission.amount
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        logger.warning("Rejected sale submission: missing amount")
        raise ValidationError("Missing product or amount")

    for field_name in TEXT_FIELDS:
        value = getattr(submission, field_name)
        if value is not None and not isinstance(value, SCALAR_TYPES):
            logger.warning(f"Rejected sale submission: non-scalar {field_name}")
            raise ValidationError(f"Field {field_name} must be a string")


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _secret_matches(provided: Optional[str], expected: str) -> bool:
    if not isinstance(provided, str):
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
