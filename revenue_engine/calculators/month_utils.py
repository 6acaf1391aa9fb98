"""Month arithmetic used by configuration resolution and carryover.

Billing periods are calendar months represented by the ``datetime.date``
of their first day.
"""

import datetime as dt
from calendar import monthrange
from typing import Iterator, Tuple, Union

MonthLike = Union[dt.date, str]


def month_start(value: MonthLike) -> dt.date:
    """Normalize a date or ``YYYY-MM`` / ``YYYY-MM-DD`` string to the first of its month.

    Args:
        value: A date, datetime, or string in YYYY-MM or YYYY-MM-DD format

    Returns:
        Date of the first day of the month

    Raises:
        ValueError: If the string cannot be parsed

    Example:
        >>> month_start("2026-01")
        datetime.date(2026, 1, 1)
        >>> month_start(dt.date(2026, 1, 17))
        datetime.date(2026, 1, 1)
    """
    if isinstance(value, dt.datetime):
        return dt.date(value.year, value.month, 1)
    if isinstance(value, dt.date):
        return dt.date(value.year, value.month, 1)

    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y-%m"):
        try:
            parsed = dt.datetime.strptime(text, fmt)
            return dt.date(parsed.year, parsed.month, 1)
        except ValueError:
            continue

    raise ValueError(f"Invalid month format: {value}. Expected YYYY-MM or YYYY-MM-DD")


def months_between(source: MonthLike, target: MonthLike) -> int:
    """Return the number of whole months from ``source`` to ``target``.

    Example:
        >>> months_between("2026-01", "2026-03")
        2
        >>> months_between("2026-03", "2026-01")
        -2
    """
    start = month_start(source)
    end = month_start(target)
    return (end.year - start.year) * 12 + (end.month - start.month)


def add_months(value: MonthLike, months: int) -> dt.date:
    """Shift a month by ``months`` (may be negative)."""
    start = month_start(value)
    index = start.year * 12 + (start.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)


def month_bounds(value: MonthLike) -> Tuple[dt.date, dt.date]:
    """Return the first and last calendar day of a month."""
    start = month_start(value)
    _, last_day = monthrange(start.year, start.month)
    return start, dt.date(start.year, start.month, last_day)


def iter_months(start: MonthLike, end: MonthLike) -> Iterator[dt.date]:
    """Yield each month from ``start`` to ``end`` inclusive, in order."""
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        yield current
        current = add_months(current, 1)


def format_month(value: MonthLike) -> str:
    """Format a month as ``YYYY-MM``."""
    return month_start(value).strftime("%Y-%m")
