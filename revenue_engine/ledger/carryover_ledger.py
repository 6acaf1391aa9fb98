"""
Carryover ledger storage.

The ledger keeps one row per ``(project_id, source_month)`` holding the
hours that month billed above its maximum. Later months read the usable
rows, sum them and cap the total at the project's carryover maximum.

A row is usable for a target month when:
- it comes from an earlier month
- the target is at most ``expiry_months`` after the source (no expiry
  when unset)
- it has not been billed by an earlier month (``consumed_in`` unset or
  not before the target)

Two backends share the same in-memory row set and locking:
- InMemoryCarryoverLedger: for tests and dry runs
- JsonFileCarryoverLedger: versioned JSON file written atomically
  (temp file + rename) after every change
"""

import datetime as dt
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from revenue_engine.calculators.month_utils import MonthLike, month_start, months_between
from revenue_engine.models.billing_config import CarryoverPolicy
from revenue_engine.models.carryover import CarryoverLedgerEntry

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

LedgerKey = Tuple[str, dt.date]


class LedgerFileError(Exception):
    """Raised when a ledger file cannot be read or has an unknown version."""


@dataclass
class CarryoverAvailability:
    """Carryover usable by a project in a target month.

    Attributes:
        hours: Usable hours after the carryover cap
        uncapped_hours: Sum of all usable rows before the cap
        sources: The usable rows, oldest first
    """

    hours: Decimal = ZERO
    uncapped_hours: Decimal = ZERO
    sources: List[CarryoverLedgerEntry] = field(default_factory=list)

    @property
    def source_months(self) -> List[dt.date]:
        return [row.source_month for row in self.sources]


def is_carryover_usable(
    row: CarryoverLedgerEntry,
    target_month: MonthLike,
    expiry_months: Optional[int],
) -> bool:
    """Check whether a ledger row may feed ``target_month``.

    Example:
        >>> row = CarryoverLedgerEntry(
        ...     project_id="P-1", source_month="2026-01", carryover_hours=5
        ... )
        >>> is_carryover_usable(row, "2026-03", expiry_months=2)
        True
        >>> is_carryover_usable(row, "2026-04", expiry_months=2)
        False
    """
    target = month_start(target_month)
    age = months_between(row.source_month, target)
    if age <= 0 or row.carryover_hours <= 0:
        return False
    if expiry_months is not None and age > expiry_months:
        return False
    return row.consumed_in is None or row.consumed_in >= target


class CarryoverLedger(ABC):
    """
    Base ledger: row bookkeeping and locking; subclasses persist.

    Every mutation runs under one re-entrant lock and is persisted before
    the lock is released, so concurrent writers never interleave and the
    last write to a key wins. Mutations work on a copy of the row set that
    replaces the current one only once it has been persisted.
    """

    def __init__(self) -> None:
        self._rows: Dict[LedgerKey, CarryoverLedgerEntry] = {}
        self._lock = threading.RLock()

    @abstractmethod
    def _persist(self, rows: Dict[LedgerKey, CarryoverLedgerEntry]) -> None:
        """Write ``rows`` to the backing store."""

    def _commit(self, rows: Dict[LedgerKey, CarryoverLedgerEntry]) -> None:
        self._persist(rows)
        self._rows = rows

    def get(self, project_id: str, source_month: MonthLike) -> Optional[CarryoverLedgerEntry]:
        with self._lock:
            return self._rows.get((project_id, month_start(source_month)))

    def upsert(self, entry: CarryoverLedgerEntry) -> CarryoverLedgerEntry:
        """Insert or replace the row for ``(project_id, source_month)``.

        A ``consumed_in`` mark on an existing row is kept unless the new
        entry sets one, so recomputing a source month does not make its
        hours billable again.
        """
        with self._lock:
            existing = self._rows.get(entry.key)
            if existing is not None and entry.consumed_in is None:
                entry = entry.model_copy(update={"consumed_in": existing.consumed_in})
            rows = dict(self._rows)
            rows[entry.key] = entry
            self._commit(rows)
        logger.debug(
            f"Upserted carryover {entry.carryover_hours}h for "
            f"{entry.project_id} from {entry.source_month:%Y-%m}"
        )
        return entry

    def delete(self, project_id: str, source_month: MonthLike) -> bool:
        """Delete a row; return whether it existed."""
        key = (project_id, month_start(source_month))
        with self._lock:
            if key not in self._rows:
                return False
            rows = dict(self._rows)
            del rows[key]
            self._commit(rows)
        logger.debug(f"Deleted carryover row for {project_id} from {key[1]:%Y-%m}")
        return True

    def entries_for_project(self, project_id: str) -> List[CarryoverLedgerEntry]:
        """All rows of a project, oldest source month first."""
        with self._lock:
            rows = [row for key, row in self._rows.items() if key[0] == project_id]
        return sorted(rows, key=lambda row: row.source_month)

    def all_entries(self) -> List[CarryoverLedgerEntry]:
        with self._lock:
            rows = list(self._rows.values())
        return sorted(rows, key=lambda row: (row.project_id, row.source_month))

    def mark_consumed(
        self,
        project_id: str,
        source_months: Iterable[MonthLike],
        consumed_in: MonthLike,
    ) -> int:
        """Mark rows as billed by ``consumed_in``; return how many changed."""
        target = month_start(consumed_in)
        changed = 0
        with self._lock:
            rows = dict(self._rows)
            for source in source_months:
                key = (project_id, month_start(source))
                row = rows.get(key)
                if row is None or row.consumed_in == target:
                    continue
                rows[key] = row.model_copy(update={"consumed_in": target})
                changed += 1
            if changed:
                self._commit(rows)
        return changed

    def release_consumed(self, project_id: str, consumed_in: MonthLike) -> int:
        """Clear every mark set by ``consumed_in``; return how many changed."""
        target = month_start(consumed_in)
        released = 0
        with self._lock:
            rows = dict(self._rows)
            for key, row in self._rows.items():
                if key[0] == project_id and row.consumed_in == target:
                    rows[key] = row.model_copy(update={"consumed_in": None})
                    released += 1
            if released:
                self._commit(rows)
        return released

    def available_carryover(
        self,
        project_id: str,
        target_month: MonthLike,
        policy: CarryoverPolicy,
    ) -> CarryoverAvailability:
        """Sum the usable rows for a month, capped at ``policy.max_hours``.

        Returns an empty availability when carryover is disabled.
        """
        if not policy.enabled:
            return CarryoverAvailability()

        target = month_start(target_month)
        sources = [
            row
            for row in self.entries_for_project(project_id)
            if is_carryover_usable(row, target, policy.expiry_months)
        ]
        total = sum((row.carryover_hours for row in sources), ZERO)
        hours = total if policy.max_hours is None else min(total, policy.max_hours)
        return CarryoverAvailability(hours=hours, uncapped_hours=total, sources=sources)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class InMemoryCarryoverLedger(CarryoverLedger):
    """Ledger that lives only for the lifetime of the process."""

    def __init__(self, entries: Optional[Iterable[CarryoverLedgerEntry]] = None):
        super().__init__()
        for entry in entries or []:
            self._rows[entry.key] = entry

    def _persist(self, rows: Dict[LedgerKey, CarryoverLedgerEntry]) -> None:
        pass


class JsonFileCarryoverLedger(CarryoverLedger):
    """
    Ledger persisted to a versioned JSON file.

    File layout::

        {"version": "1.0", "last_updated": "...", "entries": [{...}, ...]}

    Writes go to a temp file in the same directory and are moved over the
    ledger file with ``os.replace``, so readers never see a partial file.

    Raises:
        LedgerFileError: On load, if the file is corrupt or its version
            is unknown
    """

    FILE_VERSION = "1.0"

    def __init__(self, file_path):
        super().__init__()
        self.file_path = Path(file_path)
        self._load()

    def _load(self) -> None:
        if not self.file_path.exists():
            logger.debug(f"Ledger file not found, starting empty: {self.file_path}")
            return

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise LedgerFileError(f"Corrupted ledger file {self.file_path}: {e}") from e

        version = payload.get("version", "unknown")
        if version != self.FILE_VERSION:
            raise LedgerFileError(
                f"Ledger version mismatch in {self.file_path} "
                f"(expected {self.FILE_VERSION}, got {version})"
            )

        for raw in payload.get("entries", []):
            entry = CarryoverLedgerEntry(**raw)
            self._rows[entry.key] = entry

        logger.info(f"Loaded {len(self._rows)} carryover rows from {self.file_path}")

    def _persist(self, rows: Dict[LedgerKey, CarryoverLedgerEntry]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": self.FILE_VERSION,
            "last_updated": dt.datetime.now().isoformat(),
            "entries": [
                entry.model_dump(mode="json")
                for entry in sorted(
                    rows.values(),
                    key=lambda row: (row.project_id, row.source_month),
                )
            ],
        }

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.file_path.parent, prefix=".ledger-", suffix=".tmp"
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(temp_path, self.file_path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        logger.debug(f"Saved {len(rows)} carryover rows to {self.file_path}")
