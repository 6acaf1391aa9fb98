"""Hierarchy data structures for revenue attribution.

The hierarchy has five levels: Company → Project → Employee → Day → Task.
Each node carries hours and revenue; children of a node always sum to
the node's values.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

ZERO = Decimal("0")


class HierarchyLevel(str, Enum):
    COMPANY = "company"
    PROJECT = "project"
    EMPLOYEE = "employee"
    DAY = "day"
    TASK = "task"


@dataclass
class HierarchyNode:
    """One node of the revenue hierarchy.

    Attributes:
        level: Level of the node
        key: Stable identifier within the parent (id, ISO date or task name)
        label: Display label
        hours: Billed hours attributed to the node
        revenue: Revenue attributed to the node
        rounded_minutes: Rounded minutes the attribution is based on
        children: Child nodes in display order
        rate: Hourly rate (project nodes only)
        work_date: Date of work (day nodes only)
    """

    level: HierarchyLevel
    key: str
    label: str
    hours: Decimal = ZERO
    revenue: Decimal = ZERO
    rounded_minutes: Decimal = ZERO
    children: List["HierarchyNode"] = field(default_factory=list)
    rate: Optional[Decimal] = None
    work_date: Optional[dt.date] = None

    def walk(self) -> Iterator["HierarchyNode"]:
        """Iterate over this node and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def children_hours(self) -> Decimal:
        return sum((c.hours for c in self.children), ZERO)

    def children_revenue(self) -> Decimal:
        return sum((c.revenue for c in self.children), ZERO)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data: Dict[str, Any] = {
            "level": self.level.value,
            "key": self.key,
            "label": self.label,
            "hours": str(self.hours),
            "revenue": str(self.revenue),
        }
        if self.rate is not None:
            data["rate"] = str(self.rate)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data
