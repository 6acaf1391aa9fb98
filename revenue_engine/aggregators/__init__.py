"""Aggregators that turn entries into monthly billing and revenue trees."""

from revenue_engine.aggregators.hierarchy_distributor import (
    HierarchyDistributor,
    format_day_label,
    split_proportionally,
)
from revenue_engine.aggregators.monthly_billing_aggregator import (
    ConfigurationConflictError,
    MonthlyBillingAggregator,
)

__all__ = [
    "ConfigurationConflictError",
    "HierarchyDistributor",
    "MonthlyBillingAggregator",
    "format_day_label",
    "split_proportionally",
]
