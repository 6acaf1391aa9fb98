"""Shared table loading for CSV files and Google Sheets.

Every input of the engine is a table with a header row. This module loads
such a table into a pandas DataFrame, normalizes the column names and
hands each row to a reader-specific parser.
"""

import datetime as dt
import logging
import math
import numbers
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple, Union

import pandas as pd

from revenue_engine.services.google_sheets_service import GoogleSheetsService

logger = logging.getLogger(__name__)

# Day zero of Google Sheets serial dates
SHEETS_EPOCH = dt.date(1899, 12, 30)


def normalize_column(name: Any) -> str:
    """Normalize a header: ``"Project ID"`` → ``"project_id"``."""
    return "_".join(str(name).strip().lower().replace("-", " ").split())


def clean_cell(value: Any) -> str:
    """Convert a cell to a stripped string; empty, None and NaN become ``""``."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_sheet_date(value: Any) -> Union[dt.date, str]:
    """Parse a date cell.

    Unformatted Sheets values are day serials counted from 1899-12-30;
    text values are passed on for model validation.

    Example:
        >>> parse_sheet_date(46037)
        datetime.date(2026, 1, 15)
        >>> parse_sheet_date("2026-01-15")
        '2026-01-15'
    """
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return SHEETS_EPOCH + dt.timedelta(days=int(value))
    if isinstance(value, (dt.datetime, pd.Timestamp)):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return clean_cell(value)


class TabularReader:
    """Base class for readers of header-row tables.

    Subclasses set ``REQUIRED_COLUMNS`` and ``DEFAULT_RANGE``.

    Attributes:
        sheets_service: Service used for spreadsheet sources (optional for
            CSV-only use)
    """

    REQUIRED_COLUMNS: Sequence[str] = ()
    DEFAULT_RANGE = "A1:Z"

    def __init__(self, sheets_service: Optional[GoogleSheetsService] = None):
        self.sheets_service = sheets_service

    def load_csv(self, path: Union[str, Path]) -> pd.DataFrame:
        """Load a CSV file with every cell as text.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If required columns are missing
        """
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        logger.debug(f"Loaded {len(df)} rows from {path}")
        return self._prepare(df, str(path))

    def load_sheet(
        self, spreadsheet_id: str, range_name: Optional[str] = None
    ) -> pd.DataFrame:
        """Load a spreadsheet range.

        Raises:
            ValueError: If no sheets service was configured or required
                columns are missing
        """
        if self.sheets_service is None:
            raise ValueError(f"{type(self).__name__} has no Google Sheets service")
        range_name = range_name or self.DEFAULT_RANGE
        df = self.sheets_service.read_sheet(spreadsheet_id, range_name)
        return self._prepare(df, f"{spreadsheet_id}:{range_name}")

    def _prepare(self, df: pd.DataFrame, source: str) -> pd.DataFrame:
        if df.empty and len(df.columns) == 0:
            logger.warning(f"No data found in {source}")
            return pd.DataFrame(columns=list(self.REQUIRED_COLUMNS))

        df = df.rename(columns=normalize_column)
        missing = [c for c in self.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(
                f"Missing required columns in {source}: {', '.join(missing)}"
            )
        return df

    @staticmethod
    def iter_rows(df: pd.DataFrame) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """Yield ``(sheet_row_number, row)`` skipping fully blank rows.

        Row numbers count the header as row 1, matching spreadsheet rows.
        """
        for position, (_, row) in enumerate(df.iterrows()):
            values = row.to_dict()
            if all(clean_cell(v) == "" for v in values.values()):
                continue
            yield position + 2, values
