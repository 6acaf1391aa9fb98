"""Decimal arithmetic helpers for hours and currency.

All money values produced by the engine go through ``round_currency``,
which rounds half up to the cent. Hours are kept at full Decimal
precision during calculation; ``round_hours`` exists for display and
reporting only.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
HOURS_QUANTUM = Decimal("0.01")
MINUTES_PER_HOUR = Decimal("60")

#: Rounding rule applied to every currency amount.
CURRENCY_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """Convert a numeric value to a finite Decimal.

    Floats are converted through ``str`` so that ``0.1`` becomes
    ``Decimal('0.1')`` rather than its binary expansion.

    Args:
        value: Value to convert
        field_name: Name used in error messages

    Returns:
        The value as a finite Decimal

    Raises:
        ValueError: If the value is not numeric, is a bool, or is NaN/infinite

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool")

    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{field_name} must be finite, got {value}")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError) as e:
            raise ValueError(f"Cannot convert {value!r} to Decimal for {field_name}: {e}")

    if not result.is_finite():
        raise ValueError(f"{field_name} must be finite, got {value}")

    return result


def round_currency(amount: Number) -> Decimal:
    """Round a money amount to the cent, half up.

    Example:
        >>> round_currency(Decimal("0.125"))
        Decimal('0.13')
        >>> round_currency(Decimal("-0.125"))
        Decimal('-0.13')
    """
    return to_decimal(amount, "amount").quantize(CENT, rounding=CURRENCY_ROUNDING)


def round_hours(hours: Number) -> Decimal:
    """Round hours to two decimals for display (half up)."""
    return to_decimal(hours, "hours").quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: Number) -> Decimal:
    """Convert minutes to hours without rounding.

    Example:
        >>> minutes_to_hours(420)
        Decimal('7')
    """
    return to_decimal(minutes, "minutes") / MINUTES_PER_HOUR
