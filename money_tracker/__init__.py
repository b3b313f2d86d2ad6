"""
Money Tracker - data-access backend for personal income and expense records.

This package provides the pieces a request handler needs to work with the
`records` table:

- Settings resolved once from the environment
- Optional database password lookup in Google Secret Manager
- A lazily built, shared async PostgreSQL connection pool
- Idempotent schema bootstrap
- Parameterized record queries and the dashboard aggregate
- A service layer that maps every failure to a uniform result
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from money_tracker.config import Settings, get_settings
from money_tracker.domain.models import DashboardSummary, Record, RecordInput
from money_tracker.errors import (
    MoneyTrackerError,
    PoolConstructionError,
    PoolTimeoutError,
    QueryError,
    SchemaError,
    SecretFetchError,
    SecretFormatError,
)
from money_tracker.infrastructure.db_factory import PoolManager
from money_tracker.repository.records import RecordRepository
from money_tracker.service import OperationResult, RecordService
from money_tracker.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "DashboardSummary",
    "Record",
    "RecordInput",
    # Errors
    "MoneyTrackerError",
    "PoolConstructionError",
    "PoolTimeoutError",
    "QueryError",
    "SchemaError",
    "SecretFetchError",
    "SecretFormatError",
    # Data access
    "PoolManager",
    "RecordRepository",
    "RecordService",
    "OperationResult",
    # Logging
    "configure_logging",
    "get_logger",
]
