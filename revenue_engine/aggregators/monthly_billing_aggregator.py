"""Monthly billing orchestration.

This module turns raw timesheet entries into a month's billing result:
1. Keeps the entries dated inside the month
2. Maps project ids to canonical projects, dropping unknown projects
3. Bills every canonical catalog project, with or without entries
4. Resolves each project's effective configuration for the month
5. Sums raw minutes per task, then rounds each task total once
6. Reads usable carryover from the ledger
7. Applies the unified billing calculation
8. Groups projects by canonical company
9. Writes the month's carryover to the ledger

Projects without entries still bill their minimum and incoming carryover,
and their ledger row for the month is cleared when a recomputation no
longer produces an overage.

Billing a range of months processes them in calendar order because each
month's carryover feeds the next.
"""

import datetime as dt
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from revenue_engine.calculators.billing_calculator import (
    ADJUSTMENT_NONE,
    calculate_billed_hours,
    validate_min_max_limits,
)
from revenue_engine.calculators.month_utils import (
    MonthLike,
    iter_months,
    month_bounds,
)
from revenue_engine.calculators.rounding import apply_rounding, round_task_minutes
from revenue_engine.ledger.carryover_ledger import CarryoverLedger
from revenue_engine.ledger.carryover_sync import CarryoverSync
from revenue_engine.models.billing_result import (
    BilledProjectResult,
    CompanyBillingResult,
    MonthlyBillingResult,
    RoundedEntry,
)
from revenue_engine.models.catalog import ProjectCatalog
from revenue_engine.models.timesheet import TimesheetEntry
from revenue_engine.resolvers.effective_config_resolver import EffectiveConfigResolver
from revenue_engine.utils.logging_utils import LogContext, log_function_call

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ConfigurationConflictError(Exception):
    """Raised when a project's effective minimum exceeds its effective maximum.

    Minimum and maximum hours are versioned separately, so inheritance can
    combine an old minimum with a newer, lower maximum.
    """

    def __init__(self, project_id: str, month: dt.date, minimum, maximum):
        self.project_id = project_id
        self.month = month
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Project {project_id} in {month:%Y-%m}: minimum hours ({minimum}) "
            f"exceed maximum hours ({maximum})"
        )


class MonthlyBillingAggregator:
    """Compute monthly billing for every canonical project of the catalog.

    Attributes:
        resolver: Effective configuration resolver
        catalog: Known projects and canonical mapping
        ledger: Carryover ledger read for carryover in
        sync: Writer for the month's ledger updates
        max_workers: Bill projects of a month on this many threads

    Example:
        >>> aggregator = MonthlyBillingAggregator(
        ...     resolver=EffectiveConfigResolver(store),
        ...     catalog=catalog,
        ...     ledger=InMemoryCarryoverLedger(),
        ... )  # doctest: +SKIP
        >>> result = aggregator.calculate_month(entries, "2026-01")  # doctest: +SKIP
        >>> result.total_billed_revenue  # doctest: +SKIP
        Decimal('4500.00')
    """

    def __init__(
        self,
        resolver: EffectiveConfigResolver,
        catalog: ProjectCatalog,
        ledger: CarryoverLedger,
        sync: Optional[CarryoverSync] = None,
        max_workers: int = 1,
    ):
        self.resolver = resolver
        self.catalog = catalog
        self.ledger = ledger
        self.sync = sync or CarryoverSync(ledger)
        self.max_workers = max_workers

    @log_function_call(level="DEBUG")
    def calculate_month(
        self,
        entries: Iterable[TimesheetEntry],
        month: MonthLike,
        persist: bool = True,
    ) -> MonthlyBillingResult:
        """Bill every canonical catalog project for ``month``.

        Args:
            entries: Raw timesheet entries (any period)
            month: Month to bill
            persist: Write the month's carryover to the ledger

        Returns:
            MonthlyBillingResult grouped by company

        Raises:
            ConfigurationConflictError: If a project's effective minimum
                exceeds its effective maximum
        """
        first_day, last_day = month_bounds(month)
        result = MonthlyBillingResult(month=first_day)

        by_project: Dict[str, List[TimesheetEntry]] = defaultdict(list)
        dropped: Dict[str, int] = defaultdict(int)

        for entry in entries:
            if not first_day <= entry.work_date <= last_day:
                result.out_of_period += 1
                continue
            canonical = self.catalog.canonical_project_id(entry.project_id)
            if canonical is None:
                dropped[entry.project_id] += 1
                continue
            by_project[canonical].append(entry)

        for project_id, count in sorted(dropped.items()):
            logger.warning(
                f"Dropped {count} entries of unknown project {project_id} "
                f"in {first_day:%Y-%m}"
            )
        result.dropped_project_ids = dict(dropped)
        result.dropped_unknown_project = sum(dropped.values())

        project_ids = sorted(
            set(self.catalog.canonical_project_ids()) | set(by_project)
        )
        if self.max_workers > 1 and len(project_ids) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                billed = list(
                    pool.map(
                        lambda pid: self.bill_project(pid, by_project[pid], first_day),
                        project_ids,
                    )
                )
        else:
            billed = [
                self.bill_project(pid, by_project[pid], first_day) for pid in project_ids
            ]

        result.companies = self._group_by_company(billed)

        logger.info(
            f"Billed {len(billed)} projects for {first_day:%Y-%m}: "
            f"{result.total_billed_hours:.2f}h, {result.total_billed_revenue}"
        )

        if persist:
            result.sync_report = self.sync.dispatch(result)

        return result

    def bill_project(
        self, project_id: str, entries: List[TimesheetEntry], month: dt.date
    ) -> BilledProjectResult:
        """Bill one canonical project for one month.

        Raises:
            ConfigurationConflictError: If minimum exceeds maximum
        """
        with LogContext(project_id=project_id, month=f"{month:%Y-%m}"):
            config = self.resolver.resolve_all(project_id, month)

            if not validate_min_max_limits(config.minimum_value, config.maximum_value):
                raise ConfigurationConflictError(
                    project_id, month, config.minimum_value, config.maximum_value
                )

            increment = config.increment_value
            task_minutes: Dict[str, Decimal] = defaultdict(lambda: ZERO)
            for entry in entries:
                task_minutes[entry.task_label] += entry.total_minutes
            actual_minutes = sum(task_minutes.values(), ZERO)
            rounded_minutes = Decimal(
                round_task_minutes(task_minutes.values(), increment)
            )

            # Per-entry rounding only weighs the hierarchy split
            rounded_entries = [
                RoundedEntry(
                    entry=entry,
                    rounded_minutes=apply_rounding(entry.total_minutes, increment),
                )
                for entry in entries
            ]

            policy = config.carryover_policy
            availability = self.ledger.available_carryover(project_id, month, policy)

            outcome = calculate_billed_hours(
                rounded_minutes=rounded_minutes,
                rate=config.rate_value,
                minimum_hours=config.minimum_value,
                maximum_hours=config.maximum_value,
                active=config.is_active,
                carryover_in=availability.hours,
                carryover_enabled=policy.enabled,
            )

            if outcome.adjustment != ADJUSTMENT_NONE:
                logger.debug(f"Adjustment for {project_id}: {outcome.adjustment}")

            return BilledProjectResult(
                project_id=project_id,
                project_name=self._project_name(project_id, entries),
                client_id=self.catalog.canonical_client_id(project_id),
                month=month,
                rounding_increment=increment,
                actual_minutes=actual_minutes,
                rounded_minutes=rounded_minutes,
                raw_rounded_hours=outcome.base_hours,
                rate=config.rate_value,
                effective_hours=outcome.effective_hours,
                billed_hours=outcome.billed_hours,
                billed_revenue=outcome.billed_revenue,
                base_revenue=outcome.base_revenue,
                minimum_applied=outcome.minimum_applied,
                maximum_applied=outcome.maximum_applied,
                carryover_in=outcome.carryover_in,
                carryover_out=outcome.carryover_out,
                unbillable_hours=outcome.unbillable_hours,
                minimum_padding=outcome.minimum_padding,
                adjustment=outcome.adjustment,
                config=config,
                entries=rounded_entries,
                carryover_sources=availability.sources if outcome.carryover_in else [],
            )

    def calculate_range(
        self,
        entries: Iterable[TimesheetEntry],
        start_month: MonthLike,
        end_month: MonthLike,
        persist: bool = True,
    ) -> List[MonthlyBillingResult]:
        """Bill consecutive months in calendar order.

        Each month is written to the ledger before the next one is billed
        so carryover flows forward. With ``persist=False`` the ledger is
        left untouched and months are billed independently.
        """
        all_entries = list(entries)
        return [
            self.calculate_month(all_entries, month, persist=persist)
            for month in iter_months(start_month, end_month)
        ]

    def _project_name(self, project_id: str, entries: List[TimesheetEntry]) -> str:
        name = self.catalog.project_name(project_id)
        if name != project_id:
            return name
        for entry in entries:
            if entry.project_name:
                return entry.project_name
        return project_id

    def _group_by_company(
        self, projects: List[BilledProjectResult]
    ) -> List[CompanyBillingResult]:
        companies: Dict[str, CompanyBillingResult] = {}
        for project in projects:
            company = companies.get(project.client_id)
            if company is None:
                company = CompanyBillingResult(
                    client_id=project.client_id,
                    client_name=self.catalog.client_name(project.client_id),
                )
                companies[project.client_id] = company
            company.projects.append(project)

        for company in companies.values():
            company.projects.sort(key=lambda p: (p.project_name.lower(), p.project_id))

        return sorted(
            companies.values(), key=lambda c: (c.client_name.lower(), c.client_id)
        )
