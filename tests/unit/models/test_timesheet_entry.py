"""Unit tests for the TimesheetEntry model."""

import datetime as dt
from decimal import Decimal

import pytest
from pydantic import ValidationError

from revenue_engine.models.base import BaseDataModel
from revenue_engine.models.timesheet import NO_TASK_LABEL, TimesheetEntry


def make_entry(**overrides):
    data = {
        "work_date": dt.date(2026, 1, 15),
        "project_id": "P-1",
        "client_id": "C-1",
        "user_id": "U-1",
        "task_name": "Design review",
        "total_minutes": 45,
    }
    data.update(overrides)
    return TimesheetEntry(**data)


class TestBaseDataModel:
    """Test shared model configuration."""

    def test_extra_fields_forbidden(self):
        """Test unknown fields are rejected."""

        class Sample(BaseDataModel):
            name: str

        with pytest.raises(ValidationError):
            Sample(name="x", unknown="y")

    def test_validate_assignment(self):
        """Test assignments are validated."""

        class Sample(BaseDataModel):
            count: int

        sample = Sample(count=1)
        with pytest.raises(ValidationError):
            sample.count = "not a number"


class TestTimesheetEntry:
    """Test timesheet entry validation."""

    def test_valid_entry(self):
        """Test a complete entry is accepted."""
        entry = make_entry()

        assert entry.project_id == "P-1"
        assert entry.total_minutes == Decimal("45")
        assert entry.work_date == dt.date(2026, 1, 15)

    def test_minutes_from_string(self):
        """Test minutes given as text are converted."""
        assert make_entry(total_minutes="7.5").total_minutes == Decimal("7.5")

    def test_date_from_iso_string(self):
        """Test ISO date strings are parsed."""
        assert make_entry(work_date="2026-02-03").work_date == dt.date(2026, 2, 3)

    def test_negative_minutes_rejected(self):
        """Test negative durations are rejected."""
        with pytest.raises(ValidationError, match="non-negative"):
            make_entry(total_minutes=-5)

    @pytest.mark.parametrize("value", ["nan", "inf", "abc"])
    def test_non_finite_minutes_rejected(self, value):
        """Test NaN, infinity and text are rejected."""
        with pytest.raises(ValidationError):
            make_entry(total_minutes=value)

    @pytest.mark.parametrize("field", ["project_id", "user_id"])
    def test_blank_ids_rejected(self, field):
        """Test whitespace-only identifiers are rejected."""
        with pytest.raises(ValidationError):
            make_entry(**{field: "   "})

    def test_ids_are_stripped(self):
        """Test identifiers lose surrounding whitespace."""
        entry = make_entry(project_id=" P-1 ", client_id=" C-1 ")
        assert entry.project_id == "P-1"
        assert entry.client_id == "C-1"

    def test_client_id_optional(self):
        """Test a missing client id becomes an empty string."""
        entry = TimesheetEntry(
            work_date=dt.date(2026, 1, 1),
            project_id="P-1",
            user_id="U-1",
            total_minutes=10,
        )
        assert entry.client_id == ""

    @pytest.mark.parametrize("task_name", [None, "", "   "])
    def test_missing_task_label(self, task_name):
        """Test blank task names are labelled "No Task"."""
        assert make_entry(task_name=task_name).task_label == NO_TASK_LABEL

    def test_user_label_falls_back_to_id(self):
        """Test the user id is shown when no name is known."""
        assert make_entry().user_label == "U-1"
        assert make_entry(user_name="Alice").user_label == "Alice"
