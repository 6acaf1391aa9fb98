"""Business rule validators for billing inputs.

These checks report problems that the models accept individually but
that make a month's bill suspicious or impossible to compute.
"""

from decimal import Decimal
from typing import Iterable, Optional

from revenue_engine.calculators.billing_calculator import validate_min_max_limits
from revenue_engine.calculators.month_utils import MonthLike, format_month
from revenue_engine.models.billing_config import EffectiveBillingConfig
from revenue_engine.models.catalog import ProjectCatalog
from revenue_engine.models.timesheet import TimesheetEntry
from revenue_engine.resolvers.effective_config_resolver import EffectiveConfigResolver
from revenue_engine.validators.validation_report import ValidationReport

MINUTES_PER_DAY = Decimal("1440")


class BillingRuleValidators:
    """Collection of billing rule validation methods."""

    @staticmethod
    def validate_entry(
        entry: TimesheetEntry, report: ValidationReport, row: Optional[int] = None
    ) -> None:
        """Warn about entries longer than a full day."""
        if entry.total_minutes > MINUTES_PER_DAY:
            report.add_warning(
                "total_minutes",
                f"Entry of {entry.total_minutes} minutes on {entry.work_date} "
                f"exceeds one day",
                entry.total_minutes,
                row=row,
                project_id=entry.project_id,
                month=entry.work_date,
            )

    @staticmethod
    def validate_effective_config(
        config: EffectiveBillingConfig, report: ValidationReport
    ) -> None:
        """Check the resolved limits and carryover policy of one project month.

        Reports an error when the effective minimum exceeds the effective
        maximum, and a warning when carryover is enabled without a maximum
        (no excess can ever be carried).
        """
        location = {"project_id": config.project_id, "month": config.month}

        if not validate_min_max_limits(config.minimum_value, config.maximum_value):
            report.add_error(
                "minimum_hours",
                f"Minimum hours ({config.minimum_value}) exceed maximum hours "
                f"({config.maximum_value})",
                config.minimum_value,
                **location,
            )

        if config.carryover_policy.enabled and config.maximum_value is None:
            report.add_warning(
                "carryover",
                "Carryover is enabled but no maximum hours are set",
                config.carryover_policy.enabled,
                **location,
            )

        if config.rate.is_default:
            report.add_info(
                "rate",
                f"No rate configured, default rate {config.rate_value} applies",
                config.rate_value,
                **location,
            )

    @classmethod
    def validate_month(
        cls,
        entries: Iterable[TimesheetEntry],
        month: MonthLike,
        resolver: EffectiveConfigResolver,
        catalog: ProjectCatalog,
    ) -> ValidationReport:
        """Validate everything needed to bill one month.

        Returns:
            ValidationReport with issues for entries, unknown projects and
            effective configurations
        """
        report = ValidationReport()
        month_label = format_month(month)
        project_ids = set()

        for entry in entries:
            if format_month(entry.work_date) != month_label:
                continue
            cls.validate_entry(entry, report)
            canonical = catalog.canonical_project_id(entry.project_id)
            if canonical is None:
                report.add_warning(
                    "project_id",
                    f"Unknown project {entry.project_id}, entries will be excluded",
                    entry.project_id,
                    project_id=entry.project_id,
                    month=month_label,
                )
            else:
                project_ids.add(canonical)

        for project_id in sorted(project_ids):
            cls.validate_effective_config(resolver.resolve_all(project_id, month), report)

        return report
