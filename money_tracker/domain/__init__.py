"""
Domain package for the Money Tracker backend.

Exports the core domain models used by the repository and service layers.
Keep this package focused on data definitions and validation concerns.
"""

from money_tracker.domain.models import DashboardSummary, Record, RecordInput

__all__ = [
    "DashboardSummary",
    "Record",
    "RecordInput",
]
