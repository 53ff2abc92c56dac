"""
Webhook receiver for the sales ledger.

Accepts sale notifications from external systems over HTTP.
"""

from .app import create_app

__all__ = ["create_app"]
