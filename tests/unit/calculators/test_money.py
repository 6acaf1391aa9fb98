"""Unit tests for Decimal money and month helpers."""

import datetime as dt
from decimal import Decimal

import pytest

from revenue_engine.calculators.money import (
    minutes_to_hours,
    round_currency,
    round_hours,
    to_decimal,
)
from revenue_engine.calculators.month_utils import (
    add_months,
    format_month,
    iter_months,
    month_bounds,
    month_start,
    months_between,
)


class TestToDecimal:
    """Test conversion to Decimal."""

    def test_float_goes_through_str(self):
        """Test floats keep their short representation."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_is_stripped(self):
        """Test surrounding whitespace is ignored."""
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    @pytest.mark.parametrize("value", [True, "abc", float("nan"), float("inf")])
    def test_invalid_values_raise(self, value):
        """Test bools, text and non-finite values are rejected."""
        with pytest.raises(ValueError):
            to_decimal(value)


class TestRounding:
    """Test currency and hours rounding."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("0.125"), Decimal("0.13")),
            (Decimal("0.124"), Decimal("0.12")),
            (Decimal("2.675"), Decimal("2.68")),
            (Decimal("-0.125"), Decimal("-0.13")),
            (100, Decimal("100.00")),
        ],
    )
    def test_round_currency_half_up(self, amount, expected):
        """Test currency rounds half up to the cent."""
        assert round_currency(amount) == expected

    def test_round_hours_for_display(self):
        """Test hours round to two decimals."""
        assert round_hours(Decimal("7") / Decimal("3")) == Decimal("2.33")

    def test_minutes_to_hours_is_exact(self):
        """Test conversion does not round."""
        assert minutes_to_hours(420) == Decimal("7")
        assert minutes_to_hours(20) == Decimal("20") / Decimal("60")


class TestMonthUtils:
    """Test calendar month arithmetic."""

    @pytest.mark.parametrize(
        "value",
        ["2026-01", "2026-01-17", dt.date(2026, 1, 31), dt.datetime(2026, 1, 5, 9)],
    )
    def test_month_start(self, value):
        """Test every accepted form normalizes to the first of the month."""
        assert month_start(value) == dt.date(2026, 1, 1)

    def test_month_start_invalid(self):
        """Test an unparseable month raises."""
        with pytest.raises(ValueError, match="Invalid month format"):
            month_start("January")

    def test_months_between(self):
        """Test whole months between two months, across a year boundary."""
        assert months_between("2025-11", "2026-02") == 3
        assert months_between("2026-02", "2025-11") == -3

    def test_add_months(self):
        """Test shifting months forward and backward."""
        assert add_months("2026-12", 1) == dt.date(2027, 1, 1)
        assert add_months("2026-01", -1) == dt.date(2025, 12, 1)

    def test_month_bounds_leap_year(self):
        """Test the last day of February in a leap year."""
        assert month_bounds("2028-02") == (dt.date(2028, 2, 1), dt.date(2028, 2, 29))

    def test_iter_months_in_order(self):
        """Test months are yielded in calendar order, inclusive."""
        assert list(iter_months("2025-11", "2026-02")) == [
            dt.date(2025, 11, 1),
            dt.date(2025, 12, 1),
            dt.date(2026, 1, 1),
            dt.date(2026, 2, 1),
        ]

    def test_iter_months_empty_when_reversed(self):
        """Test a reversed range yields nothing."""
        assert list(iter_months("2026-02", "2026-01")) == []

    def test_format_month(self):
        """Test YYYY-MM formatting."""
        assert format_month(dt.date(2026, 3, 9)) == "2026-03"
