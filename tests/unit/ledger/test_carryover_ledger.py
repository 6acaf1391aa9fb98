"""
Unit tests for carryover ledger storage and availability.
"""

import datetime as dt
import json
from decimal import Decimal
from unittest.mock import patch

import pytest

from revenue_engine.ledger.carryover_ledger import (
    InMemoryCarryoverLedger,
    JsonFileCarryoverLedger,
    LedgerFileError,
    is_carryover_usable,
)
from revenue_engine.models.billing_config import CarryoverPolicy
from revenue_engine.models.carryover import CarryoverLedgerEntry


def row(source_month, hours, project_id="P-1", consumed_in=None):
    return CarryoverLedgerEntry(
        project_id=project_id,
        source_month=source_month,
        carryover_hours=hours,
        consumed_in=consumed_in,
    )


ENABLED = CarryoverPolicy(enabled=True)


class TestIsCarryoverUsable:
    """Test the usability rule of a single row."""

    def test_same_or_later_source_not_usable(self):
        """Test a month cannot use its own or future carryover."""
        assert not is_carryover_usable(row("2026-03", 5), "2026-03", None)
        assert not is_carryover_usable(row("2026-04", 5), "2026-03", None)

    def test_earlier_source_usable(self):
        """Test earlier rows are usable without expiry."""
        assert is_carryover_usable(row("2025-01", 5), "2026-03", None)

    def test_expiry(self):
        """Test rows older than the expiry are not usable."""
        source = row("2026-01", 5)
        assert is_carryover_usable(source, "2026-03", expiry_months=2)
        assert not is_carryover_usable(source, "2026-04", expiry_months=2)

    def test_zero_hours_not_usable(self):
        """Test empty rows are skipped."""
        assert not is_carryover_usable(row("2026-01", 0), "2026-02", None)

    def test_consumed_by_earlier_month(self):
        """Test rows billed by an earlier month are not usable again."""
        consumed = row("2026-01", 5, consumed_in="2026-02")
        assert not is_carryover_usable(consumed, "2026-03", None)

    def test_consumed_by_same_or_later_month(self):
        """Test recomputing the consuming month sees the row again."""
        consumed = row("2026-01", 5, consumed_in="2026-02")
        assert is_carryover_usable(consumed, "2026-02", None)


class TestInMemoryCarryoverLedger:
    """Test ledger bookkeeping."""

    @pytest.fixture
    def ledger(self):
        return InMemoryCarryoverLedger(
            [row("2026-01", 3), row("2026-02", 4), row("2026-01", 9, project_id="P-2")]
        )

    def test_get_and_len(self, ledger):
        """Test lookup by key."""
        assert len(ledger) == 3
        assert ledger.get("P-1", "2026-02-10").carryover_hours == Decimal("4")
        assert ledger.get("P-1", "2026-05") is None

    def test_upsert_replaces(self, ledger):
        """Test writing the same key replaces the row."""
        ledger.upsert(row("2026-01", 6))
        assert ledger.get("P-1", "2026-01").carryover_hours == Decimal("6")
        assert len(ledger) == 3

    def test_upsert_keeps_consumed_mark(self, ledger):
        """Test recomputing a source month keeps its consumed mark."""
        ledger.mark_consumed("P-1", ["2026-01"], "2026-03")
        ledger.upsert(row("2026-01", 6))
        assert ledger.get("P-1", "2026-01").consumed_in == dt.date(2026, 3, 1)

    def test_delete(self, ledger):
        """Test deleting rows."""
        assert ledger.delete("P-1", "2026-01") is True
        assert ledger.delete("P-1", "2026-01") is False
        assert len(ledger) == 2

    def test_entries_for_project_sorted(self, ledger):
        """Test rows are listed oldest first."""
        months = [r.source_month for r in ledger.entries_for_project("P-1")]
        assert months == [dt.date(2026, 1, 1), dt.date(2026, 2, 1)]

    def test_all_entries_sorted(self, ledger):
        """Test all rows sorted by project then month."""
        keys = [r.key for r in ledger.all_entries()]
        assert keys[0] == ("P-1", dt.date(2026, 1, 1))
        assert keys[-1] == ("P-2", dt.date(2026, 1, 1))

    def test_mark_and_release_consumed(self, ledger):
        """Test consumed marks are set and released by month."""
        assert ledger.mark_consumed("P-1", ["2026-01", "2026-02"], "2026-03") == 2
        assert ledger.mark_consumed("P-1", ["2026-01"], "2026-03") == 0
        assert ledger.mark_consumed("P-1", ["2025-12"], "2026-03") == 0

        assert ledger.release_consumed("P-1", "2026-04") == 0
        assert ledger.release_consumed("P-1", "2026-03") == 2
        assert ledger.get("P-1", "2026-01").consumed_in is None

    def test_available_sums_usable_rows(self, ledger):
        """Test all earlier rows are summed."""
        availability = ledger.available_carryover("P-1", "2026-03", ENABLED)

        assert availability.hours == Decimal("7")
        assert availability.uncapped_hours == Decimal("7")
        assert availability.source_months == [dt.date(2026, 1, 1), dt.date(2026, 2, 1)]

    def test_available_capped(self, ledger):
        """Test the total is capped at the policy maximum."""
        policy = CarryoverPolicy(enabled=True, max_hours=5)
        availability = ledger.available_carryover("P-1", "2026-03", policy)

        assert availability.hours == Decimal("5")
        assert availability.uncapped_hours == Decimal("7")

    def test_available_with_expiry(self, ledger):
        """Test expired rows are excluded."""
        policy = CarryoverPolicy(enabled=True, expiry_months=1)
        availability = ledger.available_carryover("P-1", "2026-03", policy)

        assert availability.hours == Decimal("4")
        assert availability.source_months == [dt.date(2026, 2, 1)]

    def test_disabled_policy_has_nothing(self, ledger):
        """Test disabled carryover reads nothing."""
        availability = ledger.available_carryover("P-1", "2026-03", CarryoverPolicy())
        assert availability.hours == Decimal("0")
        assert availability.sources == []

    def test_consumed_rows_not_double_counted(self, ledger):
        """Test hours billed in March are not available in April."""
        ledger.mark_consumed("P-1", ["2026-01", "2026-02"], "2026-03")

        assert ledger.available_carryover("P-1", "2026-04", ENABLED).hours == 0
        assert ledger.available_carryover("P-1", "2026-03", ENABLED).hours == 7


class TestJsonFileCarryoverLedger:
    """Test JSON persistence."""

    def test_missing_file_starts_empty(self, tmp_path):
        """Test a new ledger file is not required."""
        ledger = JsonFileCarryoverLedger(tmp_path / "ledger.json")
        assert len(ledger) == 0
        assert not (tmp_path / "ledger.json").exists()

    def test_round_trip(self, tmp_path):
        """Test rows survive reopening the file."""
        path = tmp_path / "nested" / "ledger.json"
        ledger = JsonFileCarryoverLedger(path)
        ledger.upsert(row("2026-01", Decimal("2.5")))
        ledger.mark_consumed("P-1", ["2026-01"], "2026-02")

        reopened = JsonFileCarryoverLedger(path)
        stored = reopened.get("P-1", "2026-01")

        assert stored.carryover_hours == Decimal("2.5")
        assert stored.consumed_in == dt.date(2026, 2, 1)

    def test_file_layout(self, tmp_path):
        """Test the versioned file layout."""
        path = tmp_path / "ledger.json"
        JsonFileCarryoverLedger(path).upsert(row("2026-01", 3))

        payload = json.loads(path.read_text())
        assert payload["version"] == "1.0"
        assert "last_updated" in payload
        assert payload["entries"][0]["project_id"] == "P-1"
        assert payload["entries"][0]["source_month"] == "2026-01-01"

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes clean up their temp files."""
        path = tmp_path / "ledger.json"
        ledger = JsonFileCarryoverLedger(path)
        ledger.upsert(row("2026-01", 3))
        ledger.delete("P-1", "2026-01")

        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    def test_corrupt_file(self, tmp_path):
        """Test corrupt JSON raises LedgerFileError."""
        path = tmp_path / "ledger.json"
        path.write_text("{not json")

        with pytest.raises(LedgerFileError, match="Corrupted"):
            JsonFileCarryoverLedger(path)

    def test_version_mismatch(self, tmp_path):
        """Test an unknown file version raises LedgerFileError."""
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"version": "9.9", "entries": []}))

        with pytest.raises(LedgerFileError, match="version mismatch"):
            JsonFileCarryoverLedger(path)

    def test_failed_write_keeps_memory_and_file_in_step(self, tmp_path):
        """Test a failed save leaves the rows as they were on disk."""
        path = tmp_path / "ledger.json"
        ledger = JsonFileCarryoverLedger(path)
        ledger.upsert(row("2026-01", 3))

        with patch(
            "revenue_engine.ledger.carryover_ledger.os.replace",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(OSError, match="disk full"):
                ledger.upsert(row("2026-02", 4))
            with pytest.raises(OSError, match="disk full"):
                ledger.delete("P-1", "2026-01")
            with pytest.raises(OSError, match="disk full"):
                ledger.mark_consumed("P-1", ["2026-01"], "2026-02")

        assert ledger.get("P-1", "2026-02") is None
        stored = ledger.get("P-1", "2026-01")
        assert stored.carryover_hours == Decimal("3")
        assert stored.consumed_in is None
        assert JsonFileCarryoverLedger(path).all_entries() == ledger.all_entries()
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]
