"""
Utilities package for the Money Tracker backend.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from money_tracker.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
