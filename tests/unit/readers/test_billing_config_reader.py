"""Unit tests for BillingConfigReader."""

import datetime as dt
from decimal import Decimal

import pytest

from revenue_engine.models.billing_config import BillingAttribute, CarryoverPolicy
from revenue_engine.readers.billing_config_reader import BillingConfigReader
from revenue_engine.resolvers.effective_config_resolver import EffectiveConfigResolver

HEADER = "project_id,attribute,effective_month,value\n"


@pytest.fixture
def write_csv(tmp_path):
    def write(body, header=HEADER):
        path = tmp_path / "overrides.csv"
        path.write_text(header + body)
        return path

    return write


class TestBillingConfigReader:
    """Test BillingConfigReader functionality."""

    def test_read_overrides(self, write_csv):
        """Test every attribute type is parsed into the store."""
        path = write_csv(
            "P-1,rate,2026-01,120\n"
            "P-1,rounding_increment,2026-01,30\n"
            "P-1,Minimum_Hours,2026-01-01,10\n"
            "P-1,maximum_hours,2026-03,40\n"
            "P-1,active,2026-06,no\n"
        )

        store, report = BillingConfigReader().read_csv(path)

        assert report.is_valid()
        assert len(store) == 5
        config = EffectiveConfigResolver(store).resolve_all("P-1", "2026-06")
        assert config.rate_value == Decimal("120")
        assert config.increment_value == 30
        assert config.minimum_value == Decimal("10")
        assert config.maximum_value == Decimal("40")
        assert not config.is_active

    def test_blank_limit_clears_from_month(self, write_csv):
        """Test an empty minimum removes the limit from its month on."""
        path = write_csv("P-1,minimum_hours,2026-01,10\nP-1,minimum_hours,2026-06,\n")

        store, report = BillingConfigReader().read_csv(path)

        resolver = EffectiveConfigResolver(store)
        assert report.is_valid()
        assert resolver.resolve_all("P-1", "2026-05").minimum_value == Decimal("10")
        assert resolver.resolve_all("P-1", "2026-06").minimum_value is None

    def test_carryover_columns(self, write_csv):
        """Test carryover rows read the optional cap and expiry columns."""
        path = write_csv(
            "P-1,carryover,2026-01,yes,20,3\nP-2,carryover,2026-01,no,,\n",
            header=(
                "project_id,attribute,effective_month,value,"
                "carryover_max_hours,carryover_expiry_months\n"
            ),
        )

        store, report = BillingConfigReader().read_csv(path)

        resolver = EffectiveConfigResolver(store)
        assert report.is_valid()
        assert resolver.resolve_all("P-1", "2026-02").carryover_policy == (
            CarryoverPolicy(enabled=True, max_hours=20, expiry_months=3)
        )
        assert not resolver.resolve_all("P-2", "2026-02").carryover_policy.enabled

    def test_invalid_rows_are_reported(self, write_csv):
        """Test unknown attributes and bad values are rejected."""
        path = write_csv(
            "P-1,discount,2026-01,10\n"
            "P-1,rate,2026-01,-5\n"
            "P-1,rounding_increment,2026-01,7\n"
            "P-1,carryover,2026-01,maybe\n"
            "P-1,rate,someday,100\n"
            "P-1,rate,2026-02,90\n"
        )

        store, report = BillingConfigReader().read_csv(path)

        assert len(store) == 1
        assert report.error_count == 5
        assert "Unknown attribute" in report.get_errors()[0].message
        assert [e.row for e in report.get_errors()] == [2, 3, 4, 5, 6]

    def test_duplicate_override_warns(self, write_csv):
        """Test the later of two rows for the same month wins."""
        path = write_csv("P-1,rate,2026-01,100\nP-1,rate,2026-01-15,110\n")

        store, report = BillingConfigReader().read_csv(path)

        assert report.warning_count == 1
        assert "replaces row 2" in report.get_warnings()[0].message
        resolved = EffectiveConfigResolver(store).resolve(
            "P-1", BillingAttribute.RATE, "2026-01"
        )
        assert resolved.value == Decimal("110")
        assert resolved.source_month == dt.date(2026, 1, 1)

    def test_parse_into_existing_store(self, write_csv):
        """Test rows can be added to a store that already has overrides."""
        first, _ = BillingConfigReader().read_csv(write_csv("P-1,rate,2026-01,100\n"))
        reader = BillingConfigReader()

        store, _ = reader.parse_dataframe(
            reader.load_csv(write_csv("P-2,rate,2026-01,80\n")), store=first
        )

        assert store is first
        assert store.project_ids() == ["P-1", "P-2"]

