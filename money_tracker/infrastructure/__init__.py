"""
Infrastructure package for the Money Tracker backend.

Centralizes database connectivity concerns (credential lookup, pooling,
schema bootstrap). Keep this layer focused on I/O and resource management,
decoupled from record queries and request handling.
"""

from money_tracker.infrastructure.db_factory import PoolManager, build_conninfo, open_pool
from money_tracker.infrastructure.schema import ensure_schema
from money_tracker.infrastructure.secrets import resolve_credentials

__all__ = [
    "PoolManager",
    "build_conninfo",
    "ensure_schema",
    "open_pool",
    "resolve_credentials",
]
