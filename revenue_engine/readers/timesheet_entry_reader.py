"""Timesheet entry reader for CSV exports and Google Sheets.

Expected columns (header names are case-insensitive)::

    work_date | project_id | client_id | user_id | task_name | total_minutes
    ----------|------------|-----------|---------|-----------|--------------
    2026-01-15| P-1        | C-1       | U-1     | Review    | 8

``user_name`` and ``project_name`` are optional. Rows that fail
validation (missing ids, negative or non-numeric minutes, bad dates) are
rejected and reported; the remaining rows are returned.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from revenue_engine.models.timesheet import TimesheetEntry
from revenue_engine.readers.tabular_reader import (
    TabularReader,
    clean_cell,
    parse_sheet_date,
)
from revenue_engine.validators.billing_validators import BillingRuleValidators
from revenue_engine.validators.validation_report import ValidationReport

logger = logging.getLogger(__name__)

OPTIONAL_COLUMNS = ("client_id", "task_name", "user_name", "project_name")


class TimesheetEntryReader(TabularReader):
    """Reader that turns timesheet rows into TimesheetEntry models.

    Example:
        >>> reader = TimesheetEntryReader()
        >>> entries, report = reader.read_csv("entries.csv")  # doctest: +SKIP
        >>> report.summary()  # doctest: +SKIP
        'No issues found'
    """

    REQUIRED_COLUMNS = ("work_date", "project_id", "user_id", "total_minutes")
    DEFAULT_RANGE = "Entries!A1:H"

    def read_csv(self, path) -> Tuple[List[TimesheetEntry], ValidationReport]:
        """Read entries from a CSV file."""
        return self.parse_dataframe(self.load_csv(path))

    def read_sheet(
        self, spreadsheet_id: str, range_name: Optional[str] = None
    ) -> Tuple[List[TimesheetEntry], ValidationReport]:
        """Read entries from a spreadsheet range."""
        return self.parse_dataframe(self.load_sheet(spreadsheet_id, range_name))

    def parse_dataframe(
        self, df: pd.DataFrame
    ) -> Tuple[List[TimesheetEntry], ValidationReport]:
        """Parse every row of a prepared DataFrame.

        Returns:
            Valid entries and a report locating every rejected row
        """
        report = ValidationReport(source="entries")
        entries: List[TimesheetEntry] = []

        for row_number, row in self.iter_rows(df):
            entry = self._parse_row(row, row_number, report)
            if entry is not None:
                BillingRuleValidators.validate_entry(entry, report, row=row_number)
                entries.append(entry)

        rejected = len(report.rejected_rows())
        if rejected:
            logger.warning(f"Rejected {rejected} timesheet rows, kept {len(entries)}")
        else:
            logger.info(f"Read {len(entries)} timesheet entries")
        return entries, report

    def _parse_row(
        self, row: Dict[str, Any], row_number: int, report: ValidationReport
    ) -> Optional[TimesheetEntry]:
        data: Dict[str, Any] = {
            "work_date": parse_sheet_date(row.get("work_date")),
            "project_id": clean_cell(row.get("project_id")),
            "user_id": clean_cell(row.get("user_id")),
            "total_minutes": clean_cell(row.get("total_minutes")),
        }
        for column in OPTIONAL_COLUMNS:
            value = clean_cell(row.get(column))
            if value:
                data[column] = value

        try:
            return TimesheetEntry(**data)
        except ValidationError as e:
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "row"
                report.add_error(
                    field,
                    error["msg"],
                    data.get(field),
                    row=row_number,
                )
            return None
