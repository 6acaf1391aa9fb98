"""Timesheet data model for the revenue engine.

This module defines the TimesheetEntry model which represents one task
record imported from an external time-tracking system.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional, Union

from pydantic import Field, field_validator

from revenue_engine.calculators.money import to_decimal
from revenue_engine.models.base import BaseDataModel

NO_TASK_LABEL = "No Task"


class TimesheetEntry(BaseDataModel):
    """Represents a single raw time entry.

    Entries are sourced externally and are never mutated by the engine.
    ``total_minutes`` is the raw, unrounded duration; rounding happens per
    entry when a month is billed.

    Attributes:
        work_date: Calendar date the work was done
        project_id: External project identifier
        client_id: External client (company) identifier
        user_id: External user identifier
        task_name: Task description (blank means "No Task")
        total_minutes: Raw minutes worked (non-negative, finite)
        user_name: Optional display name for the user
        project_name: Optional display name for the project

    Example:
        >>> entry = TimesheetEntry(
        ...     work_date=dt.date(2026, 1, 15),
        ...     project_id="P-1",
        ...     client_id="C-1",
        ...     user_id="U-1",
        ...     task_name="Design review",
        ...     total_minutes=8,
        ... )
        >>> entry.total_minutes
        Decimal('8')
    """

    work_date: dt.date = Field(..., description="Date of work")
    project_id: str = Field(..., min_length=1, description="External project id")
    client_id: str = Field("", description="External client id")
    user_id: str = Field(..., min_length=1, description="External user id")
    task_name: Optional[str] = Field(None, description="Task name")
    total_minutes: Decimal = Field(..., ge=0, description="Raw minutes worked")
    user_name: Optional[str] = Field(None, description="User display name")
    project_name: Optional[str] = Field(None, description="Project display name")

    @field_validator("project_id", "user_id")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Validate that identifiers are not empty or whitespace only.

        Raises:
            ValueError: If the value is empty or whitespace only
        """
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()

    @field_validator("client_id")
    @classmethod
    def strip_client_id(cls, v: Optional[str]) -> str:
        """Normalize a missing client id to an empty string."""
        return (v or "").strip()

    @field_validator("total_minutes", mode="before")
    @classmethod
    def validate_minutes(cls, v: Union[int, float, str, Decimal]) -> Decimal:
        """Reject non-finite and negative durations.

        Upstream ingestion is expected to filter these, but the engine does
        not rely on it.

        Raises:
            ValueError: If the value is not a finite, non-negative number
        """
        minutes = to_decimal(v, "total_minutes")
        if minutes < 0:
            raise ValueError(f"total_minutes must be non-negative, got {minutes}")
        return minutes

    @property
    def task_label(self) -> str:
        """Task name for grouping and display."""
        if self.task_name and self.task_name.strip():
            return self.task_name.strip()
        return NO_TASK_LABEL

    @property
    def user_label(self) -> str:
        """User name for display, falling back to the user id."""
        if self.user_name and self.user_name.strip():
            return self.user_name.strip()
        return self.user_id
