"""
Core modules for the sales ledger.

This package contains commission calculation, sale ingestion and
period summaries.
"""
