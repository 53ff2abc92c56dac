"""
Exception hierarchy for the sales ledger.

Adapters map each category to their own outcome (HTTP status, exit code).
"""


class SalesLedgerError(Exception):
    """Base exception for sales ledger errors."""
    pass


class AuthorizationError(SalesLedgerError):
    """Ingestion secret did not match the configured shared secret."""
    pass


class ValidationError(SalesLedgerError):
    """Missing required fields or an unrecognized input token."""
    pass


class StorageError(SalesLedgerError):
    """Failure reading or writing durable state."""
    pass


class ConfigurationError(SalesLedgerError):
    """Invalid service settings."""
    pass
