"""Billing configuration override reader.

Expected columns::

    project_id | attribute          | effective_month | value
    -----------|--------------------|-----------------|------
    P-1        | rate               | 2026-01         | 120
    P-1        | rounding_increment | 2026-01         | 15
    P-1        | maximum_hours      | 2026-03         | 40
    P-1        | minimum_hours      | 2026-06         |
    P-1        | carryover          | 2026-01         | true

An empty value for minimum or maximum hours clears the limit from that
month on. Carryover rows may add ``carryover_max_hours`` and
``carryover_expiry_months`` columns.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from revenue_engine.models.billing_config import (
    AttributeOverride,
    BillingAttribute,
    parse_bool,
)
from revenue_engine.readers.tabular_reader import (
    TabularReader,
    clean_cell,
    parse_sheet_date,
)
from revenue_engine.resolvers.effective_config_resolver import BillingConfigStore
from revenue_engine.validators.validation_report import ValidationReport

logger = logging.getLogger(__name__)


class BillingConfigReader(TabularReader):
    """Reader that loads attribute overrides into a BillingConfigStore.

    Example:
        >>> reader = BillingConfigReader()
        >>> store, report = reader.read_csv("overrides.csv")  # doctest: +SKIP
    """

    REQUIRED_COLUMNS = ("project_id", "attribute", "effective_month", "value")
    DEFAULT_RANGE = "Overrides!A1:F"

    def read_csv(self, path) -> Tuple[BillingConfigStore, ValidationReport]:
        return self.parse_dataframe(self.load_csv(path))

    def read_sheet(
        self, spreadsheet_id: str, range_name: Optional[str] = None
    ) -> Tuple[BillingConfigStore, ValidationReport]:
        return self.parse_dataframe(self.load_sheet(spreadsheet_id, range_name))

    def parse_dataframe(
        self, df: pd.DataFrame, store: Optional[BillingConfigStore] = None
    ) -> Tuple[BillingConfigStore, ValidationReport]:
        """Parse override rows into a (new or given) store.

        A later row for the same project, attribute and month replaces an
        earlier one and is reported as a warning.
        """
        store = store if store is not None else BillingConfigStore()
        report = ValidationReport(source="overrides")
        seen: Dict[Tuple[str, BillingAttribute, Any], int] = {}
        loaded = 0

        for row_number, row in self.iter_rows(df):
            override = self._parse_row(row, row_number, report)
            if override is None:
                continue

            key = (override.project_id, override.attribute, override.effective_month)
            if key in seen:
                report.add_warning(
                    "effective_month",
                    f"Duplicate override replaces row {seen[key]}",
                    override.effective_month,
                    row=row_number,
                    project_id=override.project_id,
                )
            seen[key] = row_number
            store.add(override)
            loaded += 1

        logger.info(f"Loaded {loaded} billing overrides ({report.summary()})")
        return store, report

    def _parse_row(
        self, row: Dict[str, Any], row_number: int, report: ValidationReport
    ) -> Optional[AttributeOverride]:
        attribute_text = clean_cell(row.get("attribute")).lower()

        try:
            attribute = BillingAttribute(attribute_text)
        except ValueError:
            report.add_error(
                "attribute",
                f"Unknown attribute (expected one of "
                f"{', '.join(a.value for a in BillingAttribute)})",
                attribute_text,
                row=row_number,
            )
            return None

        try:
            value = self._row_value(attribute, row)
            return AttributeOverride(
                project_id=clean_cell(row.get("project_id")),
                attribute=attribute,
                effective_month=parse_sheet_date(row.get("effective_month")),
                value=value,
            )
        except ValidationError as e:
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "value"
                report.add_error(field, error["msg"], row.get(field), row=row_number)
        except ValueError as e:
            report.add_error("value", str(e), row.get("value"), row=row_number)
        return None

    @staticmethod
    def _row_value(attribute: BillingAttribute, row: Dict[str, Any]) -> Any:
        raw = clean_cell(row.get("value"))
        if attribute != BillingAttribute.CARRYOVER:
            return raw or None

        policy: Dict[str, Any] = {"enabled": parse_bool(raw)}
        max_hours = clean_cell(row.get("carryover_max_hours"))
        expiry = clean_cell(row.get("carryover_expiry_months"))
        if max_hours:
            policy["max_hours"] = max_hours
        if expiry:
            policy["expiry_months"] = int(expiry)
        return policy
