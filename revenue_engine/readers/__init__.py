"""Readers for timesheet entries, billing overrides and the project catalog."""

from revenue_engine.readers.billing_config_reader import BillingConfigReader
from revenue_engine.readers.project_catalog_reader import ProjectCatalogReader
from revenue_engine.readers.timesheet_entry_reader import TimesheetEntryReader

__all__ = ["BillingConfigReader", "ProjectCatalogReader", "TimesheetEntryReader"]
