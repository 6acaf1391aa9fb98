"""
Unit tests for writing billing outcomes to the carryover ledger.
"""

import datetime as dt
import logging
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest

from revenue_engine.aggregators.monthly_billing_aggregator import (
    MonthlyBillingAggregator,
)
from revenue_engine.ledger.carryover_ledger import InMemoryCarryoverLedger
from revenue_engine.ledger.carryover_sync import CarryoverSync, SyncReport
from revenue_engine.models.billing_config import AttributeOverride, BillingAttribute
from revenue_engine.models.carryover import CarryoverLedgerEntry
from revenue_engine.services.retry_handler import RetryHandler


@pytest.fixture
def ledger():
    return InMemoryCarryoverLedger()


@pytest.fixture
def no_retry():
    return RetryHandler(max_retries=0, base_delay=0)


def bill(ledger, resolver, catalog, entries, month):
    """Compute a month without writing to the ledger."""
    aggregator = MonthlyBillingAggregator(resolver, catalog, ledger)
    return aggregator.calculate_month(entries, month, persist=False)


class TestSyncProject:
    """Test the per-project write sequence."""

    def test_upserts_excess_hours(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test hours above the maximum are written as a ledger row."""
        entries = [entry_factory(total_minutes=45 * 60)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-01")

        report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        stored = ledger.get("P-1", "2026-01")
        assert stored.carryover_hours == Decimal("5")
        assert stored.actual_hours_worked == Decimal("45")
        assert stored.maximum_applied == Decimal("40")
        assert report.upserted == 1
        assert report.success

    def test_records_hours_worked_before_carryover(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test the stored hours worked exclude carryover brought in."""
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-1", source_month="2026-01", carryover_hours=5
            )
        )
        entries = [
            entry_factory(work_date=dt.date(2026, 2, 3), total_minutes=45 * 60)
        ]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-02")

        CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        project = result.get_project("P-1")
        assert project.effective_hours == Decimal("50")
        stored = ledger.get("P-1", "2026-02")
        assert stored.carryover_hours == Decimal("10")
        assert stored.actual_hours_worked == Decimal("45")

    def test_idle_catalog_project_clears_stale_row(
        self, ledger, no_retry, sample_resolver, sample_catalog
    ):
        """Test a project without entries loses the row of an earlier run."""
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-2", source_month="2026-01", carryover_hours=4
            )
        )
        result = bill(ledger, sample_resolver, sample_catalog, [], "2026-01")

        report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert ledger.get("P-2", "2026-01") is None
        assert report.deleted == 1

    def test_deletes_row_without_excess(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test a recomputed month without excess removes its stale row."""
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-1", source_month="2026-01", carryover_hours=5
            )
        )
        result = bill(
            ledger, sample_resolver, sample_catalog, [entry_factory()], "2026-01"
        )

        report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert ledger.get("P-1", "2026-01") is None
        assert report.deleted == 1

    def test_marks_sources_consumed(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test rows that fed carryover in are marked with the month."""
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-1", source_month="2026-01", carryover_hours=3
            )
        )
        entries = [entry_factory(work_date=dt.date(2026, 2, 3), total_minutes=600)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-02")

        report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert ledger.get("P-1", "2026-01").consumed_in == dt.date(2026, 2, 1)
        assert report.consumed == 1

    def test_logs_hours_lost_to_carryover_cap(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory, caplog
    ):
        """Test consuming capped sources reports the hours left over."""
        sample_resolver.store.add(
            AttributeOverride(
                project_id="P-1",
                attribute=BillingAttribute.CARRYOVER,
                effective_month="2026-02",
                value={"enabled": True, "max_hours": 2},
            )
        )
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-1", source_month="2026-01", carryover_hours=5
            )
        )
        entries = [entry_factory(work_date=dt.date(2026, 2, 3), total_minutes=600)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-02")

        with caplog.at_level(logging.WARNING):
            report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert result.get_project("P-1").carryover_in == Decimal("2")
        assert report.consumed == 1
        assert "Carryover cap for P-1 in 2026-02" in caplog.text
        assert "3h of 5h forfeited" in caplog.text

    def test_recompute_releases_previous_marks(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test recomputing a month releases marks it no longer needs."""
        ledger.upsert(
            CarryoverLedgerEntry(
                project_id="P-1",
                source_month="2026-01",
                carryover_hours=3,
                consumed_in="2026-02",
            )
        )
        sample_resolver.store.add(
            AttributeOverride(
                project_id="P-1",
                attribute=BillingAttribute.CARRYOVER,
                effective_month="2026-02",
                value="no",
            )
        )
        entries = [entry_factory(work_date=dt.date(2026, 2, 3), total_minutes=600)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-02")

        CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert result.get_project("P-1").carryover_in == Decimal("0")
        assert ledger.get("P-1", "2026-01").consumed_in is None

    def test_disabled_carryover_persists_nothing(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test unbillable excess is never written."""
        sample_resolver.store.add(
            AttributeOverride(
                project_id="P-2",
                attribute=BillingAttribute.MAXIMUM_HOURS,
                effective_month="2026-01",
                value="40",
            )
        )
        entries = [entry_factory(project_id="P-2", total_minutes=6000)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-01")

        CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert result.get_project("P-2").unbillable_hours == Decimal("60")
        assert len(ledger) == 0


class TestDispatchFailures:
    """Test failure isolation and counting."""

    def test_failures_are_counted_and_logged(
        self, no_retry, sample_resolver, sample_catalog, entry_factory, caplog
    ):
        """Test a failing write is reported without raising."""
        ledger = Mock(wraps=InMemoryCarryoverLedger())
        ledger.delete.side_effect = OSError("disk full")
        entries = [
            entry_factory(project_id="P-1"),
            entry_factory(project_id="P-2"),
        ]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-01")

        with caplog.at_level(logging.ERROR):
            report = CarryoverSync(ledger, retry_handler=no_retry).dispatch(result)

        assert report.failed == 2
        assert not report.success
        assert len(report.errors) == 2
        assert "Ledger write failed for P-1" in caplog.text

    def test_transient_failure_is_retried(
        self, sample_resolver, sample_catalog, entry_factory
    ):
        """Test transient ledger errors are retried."""
        inner = InMemoryCarryoverLedger()
        ledger = Mock(wraps=inner)
        # P-1 fails once; idle P-2 is cleared as well
        ledger.delete.side_effect = [OSError("busy"), False, False]
        result = bill(
            ledger, sample_resolver, sample_catalog, [entry_factory()], "2026-01"
        )
        handler = RetryHandler(max_retries=2, base_delay=0)

        with patch("time.sleep"):
            report = CarryoverSync(ledger, retry_handler=handler).dispatch(result)

        assert report.success
        assert ledger.delete.call_count == 3

    def test_parallel_dispatch(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test writes on a thread pool give the same ledger."""
        entries = [
            entry_factory(project_id="P-1", total_minutes=3000),
            entry_factory(project_id="P-2", total_minutes=60),
        ]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-01")

        with CarryoverSync(ledger, retry_handler=no_retry, max_workers=4) as sync:
            report = sync.dispatch(result)

        assert report.upserted == 1
        assert report.deleted == 0
        assert ledger.get("P-1", "2026-01").carryover_hours == Decimal("10")

    def test_dispatch_async(
        self, ledger, no_retry, sample_resolver, sample_catalog, entry_factory
    ):
        """Test background dispatch returns a future with the report."""
        entries = [entry_factory(total_minutes=3000)]
        result = bill(ledger, sample_resolver, sample_catalog, entries, "2026-01")

        with CarryoverSync(ledger, retry_handler=no_retry) as sync:
            report = sync.dispatch_async(result).result(timeout=5)

        assert isinstance(report, SyncReport)
        assert report.month == dt.date(2026, 1, 1)
        assert len(ledger) == 1

    def test_default_retry_handler(self, ledger):
        """Test a retry handler is created when none is given."""
        sync = CarryoverSync(ledger)
        assert isinstance(sync.retry_handler, RetryHandler)
