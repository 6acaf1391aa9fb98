"""
Carryover ledger synchronisation.

Billing is computed first and the ledger is told about the outcome
afterwards. For every catalog project the month's own ledger row is
written (or removed) and the rows that fed ``carryover_in`` are marked
as consumed by the month. Write failures are retried, then logged and
counted; they never change a billing result that was already computed.
"""

import datetime as dt
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from revenue_engine.ledger.carryover_ledger import CarryoverLedger
from revenue_engine.models.billing_result import BilledProjectResult, MonthlyBillingResult
from revenue_engine.models.carryover import CarryoverLedgerEntry
from revenue_engine.services.retry_handler import RetryHandler
from revenue_engine.utils.logging_utils import LogContext

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class SyncReport:
    """Outcome of writing one month's results to the ledger.

    Attributes:
        month: Billed month
        upserted: Rows written with carryover hours
        deleted: Rows removed because the month has no carryover
        consumed: Source rows newly marked as consumed
        failed: Projects whose writes failed after retries
        errors: One message per failed project
    """

    month: dt.date
    upserted: int = 0
    deleted: int = 0
    consumed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0


class CarryoverSync:
    """
    Writes billing outcomes to a carryover ledger.

    Args:
        ledger: Target ledger
        retry_handler: Retry policy for every ledger call
        max_workers: Run per-project writes on a thread pool of this size
            (None or 1 writes sequentially)

    Example:
        >>> sync = CarryoverSync(InMemoryCarryoverLedger())  # doctest: +SKIP
        >>> report = sync.dispatch(monthly_result)  # doctest: +SKIP
    """

    def __init__(
        self,
        ledger: CarryoverLedger,
        retry_handler: Optional[RetryHandler] = None,
        max_workers: Optional[int] = None,
    ):
        self.ledger = ledger
        self.retry_handler = retry_handler or RetryHandler(base_delay=0.5)
        self._pool: Optional[ThreadPoolExecutor] = None
        if max_workers and max_workers > 1:
            self._pool = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="ledger-write"
            )
        # Single worker keeps background dispatches in month order
        self._notifier: Optional[ThreadPoolExecutor] = None
        self._key_locks: Dict[Tuple[str, dt.date], threading.Lock] = {}
        self._key_locks_guard = threading.Lock()
        self._report_lock = threading.Lock()

    def _key_lock(self, project_id: str, month: dt.date) -> threading.Lock:
        with self._key_locks_guard:
            return self._key_locks.setdefault((project_id, month), threading.Lock())

    def _call(self, operation: Callable, *args):
        return self.retry_handler.execute_with_retry(operation, *args)

    def sync_project(self, project: BilledProjectResult, report: SyncReport) -> None:
        """Write one project's month to the ledger.

        Raises:
            Exception: Whatever the ledger raises once retries are exhausted
        """
        month = project.month
        hours = project.carryover_to_persist

        with self._key_lock(project.project_id, month):
            if hours > 0:
                row = CarryoverLedgerEntry(
                    project_id=project.project_id,
                    source_month=month,
                    carryover_hours=hours,
                    actual_hours_worked=project.raw_rounded_hours,
                    maximum_applied=project.config.maximum_value,
                )
                self._call(self.ledger.upsert, row)
                upserted, deleted = 1, 0
            else:
                upserted = 0
                existed = self._call(self.ledger.delete, project.project_id, month)
                deleted = 1 if existed else 0

            self._call(self.ledger.release_consumed, project.project_id, month)

            consumed = 0
            if project.carryover_in > 0 and project.carryover_sources:
                uncapped = sum(
                    (row.carryover_hours for row in project.carryover_sources), ZERO
                )
                if uncapped > project.carryover_in:
                    logger.warning(
                        f"Carryover cap for {project.project_id} in {month:%Y-%m}: "
                        f"{uncapped - project.carryover_in}h of {uncapped}h "
                        f"forfeited when its sources are consumed"
                    )
                consumed = self._call(
                    self.ledger.mark_consumed,
                    project.project_id,
                    [row.source_month for row in project.carryover_sources],
                    month,
                )

        with self._report_lock:
            report.upserted += upserted
            report.deleted += deleted
            report.consumed += consumed

    def _sync_safely(self, project: BilledProjectResult, report: SyncReport) -> None:
        with LogContext(project_id=project.project_id, month=f"{project.month:%Y-%m}"):
            try:
                self.sync_project(project, report)
            except Exception as e:
                message = (
                    f"Ledger write failed for {project.project_id} "
                    f"({project.month:%Y-%m}): {type(e).__name__}: {e}"
                )
                logger.error(message)
                with self._report_lock:
                    report.failed += 1
                    report.errors.append(message)

    def dispatch(self, result: MonthlyBillingResult) -> SyncReport:
        """Write every project of a month and wait for completion."""
        report = SyncReport(month=result.month)
        projects = list(result.projects)

        if self._pool is None:
            for project in projects:
                self._sync_safely(project, report)
        else:
            futures = [
                self._pool.submit(self._sync_safely, project, report)
                for project in projects
            ]
            for future in futures:
                future.result()

        log = logger.warning if report.failed else logger.info
        log(
            f"Ledger sync for {result.month:%Y-%m}: {report.upserted} upserted, "
            f"{report.deleted} deleted, {report.consumed} consumed, "
            f"{report.failed} failed"
        )
        return report

    def dispatch_async(self, result: MonthlyBillingResult) -> "Future[SyncReport]":
        """Schedule ``dispatch`` in the background and return its future."""
        if self._notifier is None:
            self._notifier = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="ledger-notify"
            )
        return self._notifier.submit(self.dispatch, result)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker threads, by default after pending writes finish."""
        if self._notifier is not None:
            self._notifier.shutdown(wait=wait)
        if self._pool is not None:
            self._pool.shutdown(wait=wait)

    def __enter__(self) -> "CarryoverSync":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
