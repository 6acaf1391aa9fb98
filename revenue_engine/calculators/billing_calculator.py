"""Unified billing calculator for one project in one month.

This module implements the contractual adjustment of rounded hours:
- Carryover hours from earlier months are added first
- Minimum hours pad active projects that fall short
- Maximum hours cap the bill; the excess becomes carryover out
- Revenue is billed hours times rate, rounded half up to the cent

The evaluation order is fixed. Applying the minimum before adding the
carryover, or the maximum before the minimum, produces different bills.

The calculation is a pure function of its inputs: it reads no ledger,
writes nothing, and returns identical outputs for identical inputs.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from revenue_engine.calculators.money import (
    Number,
    minutes_to_hours,
    round_currency,
    round_hours,
    to_decimal,
)

ZERO = Decimal("0")

ADJUSTMENT_NONE = "none"
ADJUSTMENT_MINIMUM = "minimum_applied"
ADJUSTMENT_MAXIMUM = "maximum_applied"
ADJUSTMENT_MAXIMUM_UNBILLABLE = "maximum_applied_unbillable"


@dataclass(frozen=True)
class BillingOutcome:
    """Result of the billing adjustment for one project and month.

    Attributes:
        base_hours: Rounded minutes / 60
        effective_hours: base_hours plus usable carryover in
        billed_hours: Final chargeable hours after minimum and maximum
        billed_revenue: billed_hours × rate, rounded to the cent
        base_revenue: base_hours × rate, rounded to the cent
        carryover_in: Carryover hours that were added
        carryover_out: Hours above the maximum
        unbillable_hours: Hours above the maximum that cannot be carried
            (carryover disabled)
        minimum_padding: Hours added to reach the minimum
        minimum_applied: Whether the minimum was applied
        maximum_applied: Whether the maximum was applied
        adjustment: One of none, minimum_applied, maximum_applied,
            maximum_applied_unbillable
    """

    base_hours: Decimal
    effective_hours: Decimal
    billed_hours: Decimal
    billed_revenue: Decimal
    base_revenue: Decimal
    carryover_in: Decimal
    carryover_out: Decimal
    unbillable_hours: Decimal
    minimum_padding: Decimal
    minimum_applied: bool
    maximum_applied: bool
    adjustment: str


def calculate_billed_hours(
    rounded_minutes: Number,
    rate: Number,
    minimum_hours: Optional[Number] = None,
    maximum_hours: Optional[Number] = None,
    active: bool = True,
    carryover_in: Number = 0,
    carryover_enabled: bool = True,
) -> BillingOutcome:
    """Calculate billed hours and revenue for one project in one month.

    Evaluation order:
        1. base_hours = rounded_minutes / 60
        2. effective_hours = base_hours + carryover_in (if carryover enabled)
        3. if active and minimum set and effective_hours < minimum:
           billed_hours = minimum
        4. if maximum set and billed_hours > maximum:
           carryover_out = billed_hours - maximum, billed_hours = maximum
        5. billed_revenue = round_currency(billed_hours × rate)

    ``carryover_out`` is always the excess above the maximum. When
    ``carryover_enabled`` is false the same excess is also reported as
    ``unbillable_hours``, and callers persist nothing for it.

    Args:
        rounded_minutes: Sum of per-task rounded minutes for the month
        rate: Hourly rate
        minimum_hours: Minimum billable hours, None when unset
        maximum_hours: Maximum billable hours, None when unset
        active: Whether the project is active (minimum applies only if so)
        carryover_in: Usable carryover hours from earlier months
        carryover_enabled: Whether carryover is part of the project's policy

    Returns:
        BillingOutcome with all intermediate and final values

    Raises:
        ValueError: If any numeric input is negative or non-finite

    Example:
        >>> outcome = calculate_billed_hours(
        ...     rounded_minutes=180,
        ...     rate=Decimal("50"),
        ...     minimum_hours=10,
        ...     carryover_in=5,
        ... )
        >>> outcome.effective_hours, outcome.billed_hours
        (Decimal('8'), Decimal('10'))
        >>> outcome.billed_revenue
        Decimal('500.00')
    """
    minutes = _non_negative(rounded_minutes, "rounded_minutes")
    hourly_rate = _non_negative(rate, "rate")
    carried = _non_negative(carryover_in, "carryover_in")
    minimum = (
        _non_negative(minimum_hours, "minimum_hours")
        if minimum_hours is not None
        else None
    )
    maximum = (
        _non_negative(maximum_hours, "maximum_hours")
        if maximum_hours is not None
        else None
    )

    # Step 1
    base_hours = minutes_to_hours(minutes)

    # Step 2
    applied_carryover = carried if carryover_enabled else ZERO
    effective_hours = base_hours + applied_carryover

    # Step 3
    billed_hours = effective_hours
    minimum_applied = False
    minimum_padding = ZERO
    adjustment = ADJUSTMENT_NONE

    if minimum is not None and active and effective_hours < minimum:
        minimum_padding = minimum - effective_hours
        billed_hours = minimum
        minimum_applied = True
        adjustment = ADJUSTMENT_MINIMUM

    # Step 4
    carryover_out = ZERO
    unbillable_hours = ZERO
    maximum_applied = False

    if maximum is not None and billed_hours > maximum:
        carryover_out = billed_hours - maximum
        billed_hours = maximum
        maximum_applied = True
        if carryover_enabled:
            adjustment = ADJUSTMENT_MAXIMUM
        else:
            unbillable_hours = carryover_out
            adjustment = ADJUSTMENT_MAXIMUM_UNBILLABLE

    # Step 5
    billed_revenue = round_currency(billed_hours * hourly_rate)
    base_revenue = round_currency(base_hours * hourly_rate)

    return BillingOutcome(
        base_hours=base_hours,
        effective_hours=effective_hours,
        billed_hours=billed_hours,
        billed_revenue=billed_revenue,
        base_revenue=base_revenue,
        carryover_in=applied_carryover,
        carryover_out=carryover_out,
        unbillable_hours=unbillable_hours,
        minimum_padding=minimum_padding,
        minimum_applied=minimum_applied,
        maximum_applied=maximum_applied,
        adjustment=adjustment,
    )


def validate_min_max_limits(
    minimum_hours: Optional[Number], maximum_hours: Optional[Number]
) -> bool:
    """Check that an effective minimum does not exceed the effective maximum.

    Each limit is versioned independently, so an inherited minimum can end
    up above a newer maximum even though every single override is valid.

    Returns:
        True when either limit is unset or minimum <= maximum
    """
    if minimum_hours is None or maximum_hours is None:
        return True
    return to_decimal(minimum_hours) <= to_decimal(maximum_hours)


def format_adjustment(outcome: BillingOutcome) -> str:
    """Format the billing adjustment of an outcome for display.

    Example:
        >>> format_adjustment(calculate_billed_hours(120, 50, minimum_hours=10))
        'Minimum applied (+8h)'
    """
    if outcome.adjustment == ADJUSTMENT_MINIMUM:
        return f"Minimum applied (+{_format_hours(outcome.minimum_padding)}h)"
    if outcome.adjustment == ADJUSTMENT_MAXIMUM:
        return (
            f"Maximum applied ({_format_hours(outcome.carryover_out)}h carried over)"
        )
    if outcome.adjustment == ADJUSTMENT_MAXIMUM_UNBILLABLE:
        return (
            f"Maximum applied ({_format_hours(outcome.unbillable_hours)}h unbillable)"
        )
    return "No adjustment"


def _format_hours(hours: Decimal) -> str:
    """Show whole hours without decimals, others with two."""
    if hours == hours.to_integral_value():
        return str(int(hours))
    return str(round_hours(hours))


def _non_negative(value: Number, field_name: str) -> Decimal:
    result = to_decimal(value, field_name)
    if result < 0:
        raise ValueError(f"{field_name} must be non-negative, got {result}")
    return result
