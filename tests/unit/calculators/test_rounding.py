"""Unit tests for per-task rounding.

Rounding happens per task before aggregation and always rounds up.
"""

from decimal import Decimal

import pytest

from revenue_engine.calculators.rounding import (
    DEFAULT_ROUNDING_INCREMENT,
    apply_rounding,
    get_rounding_label,
    round_task_minutes,
    validate_increment,
)


class TestApplyRounding:
    """Test rounding of a single task."""

    @pytest.mark.parametrize(
        "minutes,increment,expected",
        [
            (8, 15, 15),
            (15, 15, 15),
            (16, 15, 30),
            (400, 15, 405),
            (1, 5, 5),
            (31, 30, 60),
            (0, 15, 0),
        ],
    )
    def test_rounds_up_to_increment(self, minutes, increment, expected):
        """Test minutes round up to the next multiple of the increment."""
        assert apply_rounding(minutes, increment) == expected

    def test_zero_increment_keeps_actual_minutes(self):
        """Test increment 0 bills actual time."""
        assert apply_rounding(7, 0) == 7
        assert apply_rounding(Decimal("7.5"), 0) == Decimal("7.5")

    def test_integer_input_stays_integer(self):
        """Test integers are not converted to Decimal."""
        result = apply_rounding(8, 15)
        assert isinstance(result, int)

    def test_decimal_minutes_round_up(self):
        """Test fractional minutes round up as well."""
        assert apply_rounding(Decimal("15.01"), 15) == Decimal("30")

    def test_idempotent(self):
        """Test rounding a rounded value changes nothing."""
        once = apply_rounding(22, 15)
        assert apply_rounding(once, 15) == once

    def test_negative_minutes_raise(self):
        """Test negative minutes are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            apply_rounding(-1, 15)

    @pytest.mark.parametrize("increment", [1, 10, 60, -15, True])
    def test_invalid_increment_raises(self, increment):
        """Test increments outside 0, 5, 15, 30 are rejected."""
        with pytest.raises(ValueError, match="Invalid rounding increment"):
            apply_rounding(10, increment)


class TestRoundTaskMinutes:
    """Test rounding before aggregation."""

    def test_two_short_tasks_round_separately(self):
        """Test 8 + 8 minutes at 15 bill 30 minutes, not 16 rounded."""
        assert round_task_minutes([8, 8], 15) == 30

    def test_per_task_rounding_bills_more_than_total_rounding(self):
        """Test per-task rounding never bills less than rounding the sum."""
        tasks = [7, 7, 7, 7]
        assert round_task_minutes(tasks, 15) == 60
        assert apply_rounding(sum(tasks), 15) == 30

    def test_empty_tasks(self):
        """Test no tasks give zero minutes."""
        assert round_task_minutes([], 15) == 0


class TestIncrementHelpers:
    """Test increment validation and labels."""

    def test_default_increment(self):
        """Test the default increment is 15 minutes."""
        assert DEFAULT_ROUNDING_INCREMENT == 15

    def test_validate_increment_returns_int(self):
        """Test a valid increment is returned unchanged."""
        assert validate_increment(30) == 30

    @pytest.mark.parametrize(
        "increment,label",
        [(0, "Actual"), (5, "5 min"), (15, "15 min"), (30, "30 min")],
    )
    def test_labels(self, increment, label):
        """Test display labels for each increment."""
        assert get_rounding_label(increment) == label
