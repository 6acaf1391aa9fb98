"""Unit tests for TimesheetEntryReader and the shared table helpers."""

import datetime as dt
from decimal import Decimal
from unittest.mock import Mock

import pandas as pd
import pytest

from revenue_engine.readers.tabular_reader import (
    clean_cell,
    normalize_column,
    parse_sheet_date,
)
from revenue_engine.readers.timesheet_entry_reader import TimesheetEntryReader

HEADER = "Work Date,Project ID,Client ID,User ID,User Name,Task Name,Total Minutes\n"


@pytest.fixture
def write_csv(tmp_path):
    def write(body, header=HEADER, name="entries.csv"):
        path = tmp_path / name
        path.write_text(header + body)
        return path

    return write


class TestTableHelpers:
    """Test column and cell normalization."""

    def test_normalize_column(self):
        """Test headers are lower snake case."""
        assert normalize_column("Project ID") == "project_id"
        assert normalize_column("  total-minutes ") == "total_minutes"

    def test_clean_cell(self):
        """Test empty cells become empty strings."""
        assert clean_cell(None) == ""
        assert clean_cell(float("nan")) == ""
        assert clean_cell(60.0) == "60"
        assert clean_cell(" P-1 ") == "P-1"

    def test_parse_sheet_date(self):
        """Test serial numbers and text dates."""
        assert parse_sheet_date(46037) == dt.date(2026, 1, 15)
        assert parse_sheet_date(pd.Timestamp("2026-01-15 10:00")) == dt.date(
            2026, 1, 15
        )
        assert parse_sheet_date("2026-01-15") == "2026-01-15"
        assert parse_sheet_date(float("nan")) == ""


class TestTimesheetEntryReader:
    """Test TimesheetEntryReader functionality."""

    def test_read_csv(self, write_csv):
        """Test valid rows become entries."""
        path = write_csv(
            "2026-01-15,P-1,C-1,U-1,Alice,Development,8\n"
            "2026-01-16,P-2,,U-2,,,90.5\n"
        )

        entries, report = TimesheetEntryReader().read_csv(path)

        assert report.is_valid()
        assert len(entries) == 2
        first, second = entries
        assert first.work_date == dt.date(2026, 1, 15)
        assert first.total_minutes == Decimal("8")
        assert first.user_label == "Alice"
        assert second.client_id == ""
        assert second.total_minutes == Decimal("90.5")
        assert second.user_label == "U-2"

    def test_invalid_rows_are_rejected(self, write_csv):
        """Test bad rows are reported with their sheet row number."""
        path = write_csv(
            "2026-01-15,P-1,C-1,U-1,Alice,Development,60\n"
            "2026-01-15,P-1,C-1,U-1,Alice,Development,-5\n"
            "not-a-date,P-1,C-1,U-1,Alice,Development,60\n"
            "2026-01-15,,C-1,U-1,Alice,Development,60\n"
        )

        entries, report = TimesheetEntryReader().read_csv(path)

        assert len(entries) == 1
        assert report.error_count == 3
        assert report.rejected_rows() == [3, 4, 5]
        assert {issue.field for issue in report.get_errors()} == {
            "total_minutes",
            "work_date",
            "project_id",
        }

    def test_blank_rows_are_skipped(self, write_csv):
        """Test fully empty rows are ignored."""
        path = write_csv(",,,,,,\n2026-01-15,P-1,C-1,U-1,Alice,Development,60\n")

        entries, report = TimesheetEntryReader().read_csv(path)

        assert len(entries) == 1
        assert report.is_valid()

    def test_long_entry_warns(self, write_csv):
        """Test entries longer than a day are kept with a warning."""
        path = write_csv("2026-01-15,P-1,C-1,U-1,Alice,Development,1500\n")

        entries, report = TimesheetEntryReader().read_csv(path)

        assert len(entries) == 1
        assert report.warning_count == 1
        assert "exceeds one day" in report.get_warnings()[0].message
        assert str(report.get_warnings()[0]).endswith("(entries row 2, P-1, 2026-01)")

    def test_missing_required_column(self, write_csv):
        """Test a missing required column fails the whole read."""
        path = write_csv("2026-01-15,P-1,U-1\n", header="Work Date,Project ID,User ID\n")

        with pytest.raises(ValueError, match="Missing required columns.*total_minutes"):
            TimesheetEntryReader().read_csv(path)

    def test_read_sheet(self):
        """Test spreadsheet values with serial dates."""
        sheets_service = Mock()
        sheets_service.read_sheet.return_value = pd.DataFrame(
            [[46037, "P-1", "C-1", "U-1", "Development", 45]],
            columns=[
                "Work Date",
                "Project ID",
                "Client ID",
                "User ID",
                "Task Name",
                "Total Minutes",
            ],
        )
        reader = TimesheetEntryReader(sheets_service)

        entries, report = reader.read_sheet("sheet-id")

        sheets_service.read_sheet.assert_called_once_with("sheet-id", "Entries!A1:H")
        assert report.is_valid()
        assert entries[0].work_date == dt.date(2026, 1, 15)
        assert entries[0].total_minutes == Decimal("45")

    def test_empty_sheet(self):
        """Test a sheet without data yields no entries."""
        sheets_service = Mock()
        sheets_service.read_sheet.return_value = pd.DataFrame()

        entries, report = TimesheetEntryReader(sheets_service).read_sheet("sheet-id")

        assert entries == []
        assert report.is_valid()

    def test_read_sheet_without_service(self):
        """Test reading a sheet requires a sheets service."""
        with pytest.raises(ValueError, match="no Google Sheets service"):
            TimesheetEntryReader().read_sheet("sheet-id")
