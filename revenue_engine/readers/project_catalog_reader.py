"""Project catalog reader.

Expected columns::

    project_id | project_name | client_id | client_name
    canonical_project_id | canonical_client_id

Only ``project_id`` is required. Canonical columns name the primary id a
duplicate project or client rolls up into.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from revenue_engine.models.catalog import CatalogProject, ProjectCatalog
from revenue_engine.readers.tabular_reader import TabularReader, clean_cell
from revenue_engine.validators.validation_report import ValidationReport

logger = logging.getLogger(__name__)

CATALOG_COLUMNS = (
    "project_id",
    "project_name",
    "client_id",
    "client_name",
    "canonical_project_id",
    "canonical_client_id",
)


class ProjectCatalogReader(TabularReader):
    """Reader that builds a ProjectCatalog."""

    REQUIRED_COLUMNS = ("project_id",)
    DEFAULT_RANGE = "Projects!A1:F"

    def read_csv(self, path) -> Tuple[ProjectCatalog, ValidationReport]:
        return self.parse_dataframe(self.load_csv(path))

    def read_sheet(
        self, spreadsheet_id: str, range_name: Optional[str] = None
    ) -> Tuple[ProjectCatalog, ValidationReport]:
        return self.parse_dataframe(self.load_sheet(spreadsheet_id, range_name))

    def parse_dataframe(
        self, df: pd.DataFrame
    ) -> Tuple[ProjectCatalog, ValidationReport]:
        """Parse catalog rows; canonical ids pointing nowhere are reported."""
        report = ValidationReport(source="catalog")
        catalog = ProjectCatalog()

        for row_number, row in self.iter_rows(df):
            project = self._parse_row(row, row_number, report)
            if project is not None:
                catalog.add(project)

        for project_id in catalog.project_ids():
            project = catalog.get(project_id)
            target = project.canonical_project_id
            if target and target not in catalog:
                report.add_warning(
                    "canonical_project_id",
                    "Canonical project is not in the catalog",
                    target,
                    project_id=project_id,
                )

        logger.info(f"Loaded {len(catalog)} catalog projects")
        return catalog, report

    @staticmethod
    def _parse_row(
        row: Dict[str, Any], row_number: int, report: ValidationReport
    ) -> Optional[CatalogProject]:
        data = {column: clean_cell(row.get(column)) for column in CATALOG_COLUMNS}
        try:
            return CatalogProject(**data)
        except ValidationError as e:
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "row"
                report.add_error(field, error["msg"], data.get(field), row=row_number)
            return None
