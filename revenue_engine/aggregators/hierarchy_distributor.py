"""Hierarchical revenue attribution.

A month's billing result is re-expressed as a five-level tree:
Company → Project → Employee → Day → Task.

Company and project nodes carry the billed values. Below the project,
billed hours and revenue are split in proportion to rounded minutes, so
minimum padding and carryover are spread over the work that was done.
When a project has billed hours but no rounded minutes at all, the split
is equal per rounded entry. A project billed without any entries (minimum
or carryover only) is a leaf; idle projects and companies are omitted.

The last child of every split receives the remainder, so the children of
a node always sum exactly to the node.
"""

import datetime as dt
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from revenue_engine.models.billing_result import (
    BilledProjectResult,
    CompanyBillingResult,
    MonthlyBillingResult,
    RoundedEntry,
)
from revenue_engine.models.hierarchy import HierarchyLevel, HierarchyNode

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


def format_day_label(work_date: dt.date) -> str:
    """Format a day node label.

    Example:
        >>> format_day_label(dt.date(2024, 1, 15))
        'Mon, Jan 15'
    """
    return f"{work_date:%a}, {work_date:%b} {work_date.day}"


def split_proportionally(
    hours: Decimal, revenue: Decimal, weights: Sequence[Decimal]
) -> List[Tuple[Decimal, Decimal]]:
    """Split hours and revenue over weights; the last share takes the remainder.

    Zero total weight splits equally.

    Example:
        >>> split_proportionally(
        ...     Decimal("3"), Decimal("300"), [Decimal("1"), Decimal("2")]
        ... )
        [(Decimal('1'), Decimal('100')), (Decimal('2'), Decimal('200'))]
    """
    if not weights:
        return []

    total = sum(weights, ZERO)
    if total == 0:
        weights = [ONE] * len(weights)
        total = Decimal(len(weights))

    shares: List[Tuple[Decimal, Decimal]] = []
    given_hours = ZERO
    given_revenue = ZERO
    for weight in weights[:-1]:
        share_hours = hours * weight / total
        share_revenue = revenue * weight / total
        shares.append((share_hours, share_revenue))
        given_hours += share_hours
        given_revenue += share_revenue
    shares.append((hours - given_hours, revenue - given_revenue))
    return shares


class HierarchyDistributor:
    """Build the Company → Project → Employee → Day → Task tree.

    Example:
        >>> distributor = HierarchyDistributor()
        >>> tree = distributor.distribute(monthly_result)  # doctest: +SKIP
        >>> tree[0].level
        <HierarchyLevel.COMPANY: 'company'>
    """

    def distribute(self, result: MonthlyBillingResult) -> List[HierarchyNode]:
        """Return one company node per company with activity, in name order."""
        nodes = []
        for company in result.companies:
            projects = [p for p in company.projects if p.has_activity]
            if projects:
                nodes.append(self.build_company_node(company, projects))
        return nodes

    def build_company_node(
        self,
        company: CompanyBillingResult,
        projects: Optional[List[BilledProjectResult]] = None,
    ) -> HierarchyNode:
        if projects is None:
            projects = company.projects
        children = [self.build_project_node(p) for p in projects]
        return HierarchyNode(
            level=HierarchyLevel.COMPANY,
            key=company.client_id,
            label=company.client_name,
            hours=sum((c.hours for c in children), ZERO),
            revenue=sum((c.revenue for c in children), ZERO),
            rounded_minutes=sum((c.rounded_minutes for c in children), ZERO),
            children=children,
        )

    def build_project_node(self, project: BilledProjectResult) -> HierarchyNode:
        node = HierarchyNode(
            level=HierarchyLevel.PROJECT,
            key=project.project_id,
            label=project.project_name,
            hours=project.billed_hours,
            revenue=project.billed_revenue,
            rounded_minutes=project.rounded_minutes,
            rate=project.rate,
        )

        # Equal split per entry when no rounded minutes exist
        weigh = _by_minutes if project.rounded_minutes > 0 else _by_count
        if weigh is _by_count and project.billed_hours > 0:
            logger.debug(
                f"Project {project.project_id} has no rounded minutes, "
                f"splitting {project.billed_hours}h equally"
            )

        by_user = _group(project.entries, key=lambda r: r.entry.user_id)
        ordered_users = sorted(
            by_user.items(),
            key=lambda item: (item[1][0].entry.user_label.lower(), item[0]),
        )

        node.children = self._split_level(
            node,
            ordered_users,
            weigh,
            lambda user_id, rows, hours, revenue: self._employee_node(
                user_id, rows, hours, revenue, weigh
            ),
        )
        return node

    def _employee_node(
        self,
        user_id: str,
        rows: List[RoundedEntry],
        hours: Decimal,
        revenue: Decimal,
        weigh: Callable[[RoundedEntry], Decimal],
    ) -> HierarchyNode:
        node = HierarchyNode(
            level=HierarchyLevel.EMPLOYEE,
            key=user_id,
            label=rows[0].entry.user_label,
            hours=hours,
            revenue=revenue,
            rounded_minutes=sum((r.rounded_minutes for r in rows), ZERO),
        )

        by_day = _group(rows, key=lambda r: r.entry.work_date)
        ordered_days = sorted(by_day.items(), key=lambda item: item[0], reverse=True)

        node.children = self._split_level(
            node,
            ordered_days,
            weigh,
            lambda work_date, day_rows, day_hours, day_revenue: self._day_node(
                work_date, day_rows, day_hours, day_revenue, weigh
            ),
        )
        return node

    def _day_node(
        self,
        work_date: dt.date,
        rows: List[RoundedEntry],
        hours: Decimal,
        revenue: Decimal,
        weigh: Callable[[RoundedEntry], Decimal],
    ) -> HierarchyNode:
        node = HierarchyNode(
            level=HierarchyLevel.DAY,
            key=work_date.isoformat(),
            label=format_day_label(work_date),
            hours=hours,
            revenue=revenue,
            rounded_minutes=sum((r.rounded_minutes for r in rows), ZERO),
            work_date=work_date,
        )

        by_task = _group(rows, key=lambda r: r.entry.task_label)
        ordered_tasks = sorted(by_task.items(), key=lambda item: item[0].lower())

        node.children = self._split_level(
            node,
            ordered_tasks,
            weigh,
            lambda task, task_rows, task_hours, task_revenue: HierarchyNode(
                level=HierarchyLevel.TASK,
                key=task,
                label=task,
                hours=task_hours,
                revenue=task_revenue,
                rounded_minutes=sum((r.rounded_minutes for r in task_rows), ZERO),
            ),
        )
        return node

    @staticmethod
    def _split_level(parent, groups, weigh, make_child) -> List[HierarchyNode]:
        weights = [sum((weigh(r) for r in rows), ZERO) for _, rows in groups]
        shares = split_proportionally(parent.hours, parent.revenue, weights)
        return [
            make_child(key, rows, hours, revenue)
            for (key, rows), (hours, revenue) in zip(groups, shares)
        ]


def _by_minutes(row: RoundedEntry) -> Decimal:
    return row.rounded_minutes


def _by_count(row: RoundedEntry) -> Decimal:
    return ONE


def _group(rows: List[RoundedEntry], key) -> Dict:
    groups: Dict = OrderedDict()
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups
