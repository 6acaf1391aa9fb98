"""Calculator modules for the revenue engine."""

from revenue_engine.calculators.billing_calculator import (
    BillingOutcome,
    calculate_billed_hours,
    format_adjustment,
    validate_min_max_limits,
)
from revenue_engine.calculators.money import (
    round_currency,
    round_hours,
    to_decimal,
)
from revenue_engine.calculators.month_utils import (
    add_months,
    format_month,
    iter_months,
    month_start,
    months_between,
)
from revenue_engine.calculators.rounding import (
    DEFAULT_ROUNDING_INCREMENT,
    VALID_ROUNDING_INCREMENTS,
    apply_rounding,
    get_rounding_label,
    round_task_minutes,
)

__all__ = [
    # billing_calculator
    "BillingOutcome",
    "calculate_billed_hours",
    "format_adjustment",
    "validate_min_max_limits",
    # money
    "round_currency",
    "round_hours",
    "to_decimal",
    # month_utils
    "add_months",
    "format_month",
    "iter_months",
    "month_start",
    "months_between",
    # rounding
    "DEFAULT_ROUNDING_INCREMENT",
    "VALID_ROUNDING_INCREMENTS",
    "apply_rounding",
    "get_rounding_label",
    "round_task_minutes",
]
