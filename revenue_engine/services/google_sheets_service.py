"""
Read-only Google Sheets access for billing inputs.

Timesheet entries, configuration overrides and the project catalog can be
maintained in spreadsheets; this service turns a sheet range into a
pandas DataFrame with the first row as headers.
"""

import logging
from typing import Any, Dict, List, Optional

import google.auth
import pandas as pd
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from revenue_engine.services.retry_handler import RetryHandler

logger = logging.getLogger(__name__)

READONLY_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class GoogleSheetsService:
    """
    Google Sheets reader with retry handling.

    Authenticates with service account info (as produced by
    ``RevenueEngineConfig.get_google_service_account_info()``) or falls
    back to Application Default Credentials.
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, Any]] = None,
        retry_handler: Optional[RetryHandler] = None,
        scopes: Optional[List[str]] = None,
        service: Any = None,
    ):
        """
        Args:
            credentials: Service account info dict, None for ADC
            retry_handler: Retry handler for API calls
            scopes: OAuth scopes (read-only by default)
            service: Prebuilt Sheets API client (skips authentication)
        """
        self.credentials_info = credentials
        self.retry_handler = retry_handler or RetryHandler()
        self.scopes = scopes or READONLY_SCOPES
        self._service = service if service is not None else self._create_service()

    @classmethod
    def from_config(cls, config) -> "GoogleSheetsService":
        """Create the service from RevenueEngineConfig settings."""
        credentials = (
            config.get_google_service_account_info()
            if config.has_google_credentials
            else None
        )
        return cls(
            credentials=credentials,
            retry_handler=RetryHandler.from_config(config),
            scopes=config.google_scopes,
        )

    def _create_service(self):
        if self.credentials_info:
            credentials = service_account.Credentials.from_service_account_info(
                self.credentials_info, scopes=self.scopes
            )
            project = self.credentials_info.get("project_id", "unknown")
            logger.info(f"Sheets service using service account for project {project}")
        else:
            credentials, project = google.auth.default(scopes=self.scopes)
            logger.info(f"Sheets service using ADC for project {project}")

        return build("sheets", "v4", credentials=credentials)

    def read_sheet(
        self,
        spreadsheet_id: str,
        range_name: str,
        value_render_option: str = "UNFORMATTED_VALUE",
    ) -> pd.DataFrame:
        """
        Read a range into a DataFrame using the first row as headers.

        Short rows are padded with empty strings. A range with only a
        header row yields an empty DataFrame with those columns.

        Raises:
            HttpError: If the API request fails permanently
        """

        def _read_operation():
            return (
                self._service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=spreadsheet_id,
                    range=range_name,
                    valueRenderOption=value_render_option,
                )
                .execute()
            )

        try:
            result = self.retry_handler.execute_with_retry(_read_operation)
        except HttpError as e:
            logger.error(f"Failed to read sheet {spreadsheet_id}:{range_name}: {e}")
            raise

        df = values_to_dataframe(result.get("values", []))
        logger.debug(f"Read {len(df)} rows from {range_name}")
        return df


def values_to_dataframe(values: List[List[Any]]) -> pd.DataFrame:
    """Convert Sheets API ``values`` (header row first) to a DataFrame."""
    if not values:
        return pd.DataFrame()

    headers = [str(h).strip() for h in values[0]]
    width = len(headers)
    rows = [list(row[:width]) + [""] * (width - len(row)) for row in values[1:]]
    return pd.DataFrame(rows, columns=headers)
