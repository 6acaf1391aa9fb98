"""Data models for the revenue engine.

This package contains Pydantic models for all input entities and
dataclasses for computed results:
- BaseDataModel: Base class with common configuration
- TimesheetEntry: Raw time entry for one task
- AttributeOverride / EffectiveBillingConfig: Versioned billing configuration
- CarryoverLedgerEntry: Persisted carryover row
- ProjectCatalog: Known projects with canonical id mapping
- MonthlyBillingResult: Per-month billing grouped by company
- HierarchyNode: Five-level revenue attribution tree
"""

from revenue_engine.models.base import BaseDataModel
from revenue_engine.models.billing_config import (
    AttributeOverride,
    BillingAttribute,
    CarryoverPolicy,
    ConfigSource,
    EffectiveBillingConfig,
    ResolvedValue,
)
from revenue_engine.models.billing_result import (
    BilledProjectResult,
    CompanyBillingResult,
    MonthlyBillingResult,
    RoundedEntry,
)
from revenue_engine.models.carryover import CarryoverLedgerEntry
from revenue_engine.models.catalog import CatalogProject, ProjectCatalog
from revenue_engine.models.hierarchy import HierarchyLevel, HierarchyNode
from revenue_engine.models.timesheet import TimesheetEntry

__all__ = [
    "BaseDataModel",
    "TimesheetEntry",
    "AttributeOverride",
    "BillingAttribute",
    "CarryoverPolicy",
    "ConfigSource",
    "EffectiveBillingConfig",
    "ResolvedValue",
    "BilledProjectResult",
    "CompanyBillingResult",
    "MonthlyBillingResult",
    "RoundedEntry",
    "CarryoverLedgerEntry",
    "CatalogProject",
    "ProjectCatalog",
    "HierarchyLevel",
    "HierarchyNode",
]
