"""Generic temporal override resolution.

A timeline is an ordered list of ``(effective_month, value)`` pairs. The
value in force for a month is the one with the latest effective month on
or before it; an override at month M stays in force until a strictly
later override exists.
"""

import datetime as dt
from bisect import bisect_right
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

from revenue_engine.calculators.month_utils import MonthLike, month_start

T = TypeVar("T")


class OverrideTimeline(Generic[T]):
    """Sorted effective-month → value mapping with point-in-time lookup.

    Example:
        >>> timeline = OverrideTimeline()
        >>> timeline.set("2026-01", 100)
        >>> timeline.set("2026-04", 120)
        >>> timeline.value_at("2026-03")
        100
        >>> timeline.value_at("2025-12") is None
        True
    """

    def __init__(self) -> None:
        self._months: List[dt.date] = []
        self._values: List[T] = []

    def set(self, effective_month: MonthLike, value: T) -> None:
        """Insert an override; an existing one at the same month is replaced."""
        month = month_start(effective_month)
        index = bisect_right(self._months, month)
        if index > 0 and self._months[index - 1] == month:
            self._values[index - 1] = value
            return
        self._months.insert(index, month)
        self._values.insert(index, value)

    def remove(self, effective_month: MonthLike) -> bool:
        """Remove the override at exactly this month; return whether one existed."""
        month = month_start(effective_month)
        index = bisect_right(self._months, month)
        if index > 0 and self._months[index - 1] == month:
            del self._months[index - 1]
            del self._values[index - 1]
            return True
        return False

    def entry_at(self, month: MonthLike) -> Optional[Tuple[dt.date, T]]:
        """Return the ``(effective_month, value)`` in force at ``month``."""
        index = bisect_right(self._months, month_start(month))
        if index == 0:
            return None
        return self._months[index - 1], self._values[index - 1]

    def value_at(self, month: MonthLike, default: Optional[T] = None) -> Optional[T]:
        entry = self.entry_at(month)
        return default if entry is None else entry[1]

    def history(self) -> List[Tuple[dt.date, T]]:
        """All overrides, newest first."""
        return list(zip(reversed(self._months), reversed(self._values)))

    def __iter__(self) -> Iterator[Tuple[dt.date, T]]:
        return iter(zip(self._months, self._values))

    def __len__(self) -> int:
        return len(self._months)
