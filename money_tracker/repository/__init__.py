"""
Repository package for the Money Tracker backend.

Holds the statements run against the `records` table.
"""

from money_tracker.repository.records import RecordRepository

__all__ = [
    "RecordRepository",
]
