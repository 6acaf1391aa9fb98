"""Carryover ledger data models.

A ledger row records the hours a project billed above its maximum in one
month so that later months can bill them. Rows are keyed by
``(project_id, source_month)``; a month that later uses a row marks it
with ``consumed_in`` so the hours are billed only once.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field, field_validator

from revenue_engine.calculators.money import to_decimal
from revenue_engine.calculators.month_utils import month_start
from revenue_engine.models.base import BaseDataModel


class CarryoverLedgerEntry(BaseDataModel):
    """Persisted carryover for one project and source month.

    Attributes:
        project_id: Canonical project identifier
        source_month: Month whose excess produced the hours
        carryover_hours: Hours carried forward (non-negative)
        actual_hours_worked: Effective hours of the source month
        maximum_applied: Maximum hours in force in the source month
        calculated_at: When the row was last written
        consumed_in: First month that billed these hours, None while unused

    Example:
        >>> row = CarryoverLedgerEntry(
        ...     project_id="P-1",
        ...     source_month="2026-01",
        ...     carryover_hours="5",
        ... )
        >>> row.source_month
        datetime.date(2026, 1, 1)
    """

    project_id: str = Field(..., min_length=1, description="Canonical project id")
    source_month: dt.date = Field(..., description="Month the excess came from")
    carryover_hours: Decimal = Field(..., ge=0, description="Carried hours")
    actual_hours_worked: Decimal = Field(
        Decimal("0"), ge=0, description="Effective hours of the source month"
    )
    maximum_applied: Optional[Decimal] = Field(
        None, description="Maximum hours in force"
    )
    calculated_at: dt.datetime = Field(
        default_factory=dt.datetime.now, description="Last write time"
    )
    consumed_in: Optional[dt.date] = Field(
        None, description="Month that billed these hours"
    )

    @field_validator("source_month", "consumed_in", mode="before")
    @classmethod
    def normalize_month(cls, v: Any) -> Optional[dt.date]:
        """Normalize to the first day of the month."""
        if v is None:
            return None
        return month_start(v)

    @field_validator("carryover_hours", "actual_hours_worked", mode="before")
    @classmethod
    def convert_hours(cls, v: Any) -> Decimal:
        """Convert hours to Decimal, rejecting non-finite values."""
        return to_decimal(v, "hours")

    @field_validator("maximum_applied", mode="before")
    @classmethod
    def convert_maximum(cls, v: Any) -> Optional[Decimal]:
        if v is None:
            return None
        return to_decimal(v, "maximum_applied")

    @property
    def key(self):
        return (self.project_id, self.source_month)
