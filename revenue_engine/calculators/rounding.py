"""Rounding engine for billable task time.

A task's raw minutes (all entries of one task in a project-month) are
quantized to the project's rounding increment *before* the project total
is formed. Rounding is always upward, so two 8-minute tasks at a 15-minute
increment bill as 15 + 15 = 30 minutes, never as the rounded total of 16
minutes, while two 8-minute entries of the same task bill as 15.
"""

from decimal import ROUND_CEILING, Decimal
from typing import Iterable, Union

from revenue_engine.calculators.money import to_decimal

Minutes = Union[int, Decimal]

#: Allowed rounding increments in minutes (0 = bill actual time).
VALID_ROUNDING_INCREMENTS = (0, 5, 15, 30)

#: Increment used when a project has no rounding configuration.
DEFAULT_ROUNDING_INCREMENT = 15

_ROUNDING_LABELS = {0: "Actual", 5: "5 min", 15: "15 min", 30: "30 min"}


def validate_increment(increment: int) -> int:
    """Validate a rounding increment.

    Raises:
        ValueError: If the increment is not one of 0, 5, 15, 30
    """
    if isinstance(increment, bool) or increment not in VALID_ROUNDING_INCREMENTS:
        raise ValueError(
            f"Invalid rounding increment: {increment}. "
            f"Must be one of {VALID_ROUNDING_INCREMENTS}"
        )
    return int(increment)


def apply_rounding(minutes: Minutes, increment: int) -> Minutes:
    """Round a single task's minutes up to the billing increment.

    Args:
        minutes: Raw minutes for one task (non-negative, finite)
        increment: Rounding increment (0, 5, 15 or 30)

    Returns:
        ``minutes`` unchanged for increment 0, otherwise the smallest
        multiple of ``increment`` that is >= ``minutes``. Integers stay
        integers.

    Raises:
        ValueError: If minutes are negative or non-finite, or the
            increment is invalid

    Example:
        >>> apply_rounding(8, 15)
        15
        >>> apply_rounding(400, 15)
        405
        >>> apply_rounding(7, 0)
        7
    """
    increment = validate_increment(increment)

    if isinstance(minutes, int) and not isinstance(minutes, bool):
        if minutes < 0:
            raise ValueError(f"minutes must be non-negative, got {minutes}")
        if increment == 0:
            return minutes
        return -(-minutes // increment) * increment

    value = to_decimal(minutes, "minutes")
    if value < 0:
        raise ValueError(f"minutes must be non-negative, got {value}")
    if increment == 0:
        return value

    steps = (value / increment).to_integral_value(rounding=ROUND_CEILING)
    return steps * increment


def round_task_minutes(task_minutes: Iterable[Minutes], increment: int) -> Minutes:
    """Round each task independently, then sum.

    Example:
        >>> round_task_minutes([8, 8], 15)
        30
    """
    return sum((apply_rounding(m, increment) for m in task_minutes), 0)


def get_rounding_label(increment: int) -> str:
    """Get the display label for a rounding increment.

    Example:
        >>> get_rounding_label(0)
        'Actual'
    """
    return _ROUNDING_LABELS.get(increment, f"{increment} min")
