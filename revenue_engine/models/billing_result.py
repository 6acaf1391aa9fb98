"""Billing result data structures.

Results are computed values and are plain dataclasses; they are built by
the monthly billing aggregator and consumed by the hierarchy distributor,
the ledger synchronisation and the CLI.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from revenue_engine.models.billing_config import EffectiveBillingConfig
from revenue_engine.models.carryover import CarryoverLedgerEntry
from revenue_engine.models.timesheet import TimesheetEntry

if TYPE_CHECKING:
    from revenue_engine.ledger.carryover_sync import SyncReport

ZERO = Decimal("0")


@dataclass
class RoundedEntry:
    """A timesheet entry with its individually rounded minutes.

    The rounded minutes weigh the entry in revenue attribution; the
    project total is rounded per task instead.
    """

    entry: TimesheetEntry
    rounded_minutes: Decimal


@dataclass
class BilledProjectResult:
    """Billing outcome for one project in one month.

    ``raw_rounded_hours`` is the sum of per-task rounded minutes / 60
    before carryover, minimum and maximum are applied. Catalog projects
    without entries are billed too, with zero rounded minutes.
    """

    project_id: str
    project_name: str
    client_id: str
    month: dt.date
    rounding_increment: int
    actual_minutes: Decimal
    rounded_minutes: Decimal
    raw_rounded_hours: Decimal
    rate: Decimal
    effective_hours: Decimal
    billed_hours: Decimal
    billed_revenue: Decimal
    base_revenue: Decimal
    minimum_applied: bool
    maximum_applied: bool
    carryover_in: Decimal
    carryover_out: Decimal
    unbillable_hours: Decimal
    minimum_padding: Decimal
    adjustment: str
    config: EffectiveBillingConfig
    entries: List[RoundedEntry] = field(default_factory=list)
    carryover_sources: List[CarryoverLedgerEntry] = field(default_factory=list)

    @property
    def carryover_enabled(self) -> bool:
        return self.config.carryover_policy.enabled

    @property
    def carryover_to_persist(self) -> Decimal:
        """Hours the ledger stores for this month (0 when carryover is off)."""
        return self.carryover_out if self.carryover_enabled else ZERO

    @property
    def has_activity(self) -> bool:
        """Whether the project has entries or bills any hours this month."""
        return bool(self.entries) or self.billed_hours > 0


@dataclass
class CompanyBillingResult:
    """Billing results of all projects of one (canonical) company."""

    client_id: str
    client_name: str
    projects: List[BilledProjectResult] = field(default_factory=list)

    @property
    def billed_hours(self) -> Decimal:
        return sum((p.billed_hours for p in self.projects), ZERO)

    @property
    def billed_revenue(self) -> Decimal:
        return sum((p.billed_revenue for p in self.projects), ZERO)

    @property
    def base_revenue(self) -> Decimal:
        return sum((p.base_revenue for p in self.projects), ZERO)

    @property
    def rounded_minutes(self) -> Decimal:
        return sum((p.rounded_minutes for p in self.projects), ZERO)


@dataclass
class MonthlyBillingResult:
    """Billing results of one month, grouped by company.

    Attributes:
        month: First day of the billed month
        companies: Companies sorted by name, each with its projects
        dropped_unknown_project: Entries excluded because their project is
            not in the catalog
        dropped_project_ids: Entry count per unknown project id
        out_of_period: Entries ignored because they fall outside the month
        sync_report: Ledger write outcome, None when nothing was persisted
    """

    month: dt.date
    companies: List[CompanyBillingResult] = field(default_factory=list)
    dropped_unknown_project: int = 0
    dropped_project_ids: Dict[str, int] = field(default_factory=dict)
    out_of_period: int = 0
    sync_report: Optional["SyncReport"] = None

    @property
    def projects(self) -> Iterator[BilledProjectResult]:
        for company in self.companies:
            yield from company.projects

    @property
    def active_projects(self) -> List[BilledProjectResult]:
        """Projects with entries or billed hours; idle catalog projects are left out."""
        return [p for p in self.projects if p.has_activity]

    def get_project(self, project_id: str) -> Optional[BilledProjectResult]:
        for project in self.projects:
            if project.project_id == project_id:
                return project
        return None

    @property
    def total_billed_hours(self) -> Decimal:
        return sum((c.billed_hours for c in self.companies), ZERO)

    @property
    def total_billed_revenue(self) -> Decimal:
        return sum((c.billed_revenue for c in self.companies), ZERO)

    @property
    def total_base_revenue(self) -> Decimal:
        return sum((c.base_revenue for c in self.companies), ZERO)
