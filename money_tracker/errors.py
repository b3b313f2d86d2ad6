"""
Error taxonomy for the Money Tracker data-access layer.

Construction-phase errors (credentials, pool, schema) leave the pool manager
uninitialized so the next request retries from scratch. Query-phase errors are
raised per statement and converted to a uniform failure by the service layer.
"""

from __future__ import annotations

from typing import Optional


class MoneyTrackerError(Exception):
    """Base class for all errors raised by this package."""


class CredentialError(MoneyTrackerError):
    """Base class for database credential resolution failures."""


class SecretFetchError(CredentialError):
    """The secret store was unreachable or the secret reference is invalid."""


class SecretFormatError(CredentialError):
    """The fetched secret payload could not be decoded as a password."""


class PoolConstructionError(MoneyTrackerError):
    """The connection pool could not be opened after all retry attempts."""


class PoolTimeoutError(MoneyTrackerError):
    """No pooled connection became available in time (or the wait queue is full)."""


class SchemaError(MoneyTrackerError):
    """The records table could not be created."""


class QueryError(MoneyTrackerError):
    """
    A statement failed.

    `diagnostic` carries the driver's primary error message.
    """

    def __init__(self, diagnostic: str, sqlstate: Optional[str] = None) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
        self.sqlstate = sqlstate


__all__ = [
    "MoneyTrackerError",
    "CredentialError",
    "SecretFetchError",
    "SecretFormatError",
    "PoolConstructionError",
    "PoolTimeoutError",
    "SchemaError",
    "QueryError",
]
