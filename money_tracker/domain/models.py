"""
Domain models for the Money Tracker backend.

Defines the record schema aligned with the `records` table created by
`money_tracker.infrastructure.schema`, the write payload used for inserts and
updates, and the dashboard aggregate.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

NAME_MAX_LENGTH = 25
ATTACHMENT_MAX_LENGTH = 255
AMOUNT_MAX_DIGITS = 14
AMOUNT_DECIMAL_PLACES = 2


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through unchanged."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class RecordInput(BaseModel):
    """
    Mutable fields of a record, as submitted on insert or edit.

    Missing notes and attachment are normalised to empty strings so the
    table never stores a NULL attachment. Strings are kept exactly as given.
    Aware dates are stored as naive UTC.
    """

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    # matches the NUMERIC(14, 2) column so a stored amount reads back unchanged
    amount: Decimal = Field(
        ...,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Positive for income, negative for expense.",
    )
    date: datetime = Field(..., description="When the income/expense happened.")
    notes: str = Field("", description="Free-form notes.")
    attachment: str = Field(
        "", max_length=ATTACHMENT_MAX_LENGTH, description="Public URL of an uploaded file."
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @field_validator("date", mode="before")
    @classmethod
    def _promote_plain_date(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min)
        if isinstance(value, str) and len(value.strip()) == 10:
            return datetime.combine(date.fromisoformat(value.strip()), time.min)
        return value

    @field_validator("date")
    @classmethod
    def _normalise_timezone(cls, value: datetime) -> datetime:
        # the column is TIMESTAMP without time zone
        return to_naive_utc(value)

    @field_validator("notes", "attachment", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Optional[str]) -> str:
        return "" if value is None else value


class Record(RecordInput):
    """
    Representation of a single row in the `records` table.
    """

    id: int = Field(..., description="Primary key (BIGSERIAL).")


class DashboardSummary(BaseModel):
    """Aggregate shown on the dashboard."""

    month_records: int = Field(..., alias="monthRecords")
    total_amount: Decimal = Field(Decimal("0"), alias="totalAmount")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @field_validator("total_amount", mode="before")
    @classmethod
    def _empty_table_sum(cls, value: Any) -> Any:
        # SUM over zero rows is NULL
        return Decimal("0") if value is None else value


__all__ = ["DashboardSummary", "Record", "RecordInput", "to_naive_utc"]
