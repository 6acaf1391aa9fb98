"""Input loading shared by the billing commands."""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import click
from google.auth.exceptions import DefaultCredentialsError
from pydantic import ValidationError

from revenue_engine.aggregators.monthly_billing_aggregator import (
    MonthlyBillingAggregator,
)
from revenue_engine.calculators.month_utils import month_start
from revenue_engine.cli.error_handlers import (
    APIError,
    ConfigurationError,
    DataValidationError,
    ProcessingError,
)
from revenue_engine.cli.utils.formatters import format_info, format_warning
from revenue_engine.config.settings import RevenueEngineConfig, get_config
from revenue_engine.ledger.carryover_ledger import (
    CarryoverLedger,
    InMemoryCarryoverLedger,
    JsonFileCarryoverLedger,
    LedgerFileError,
)
from revenue_engine.ledger.carryover_sync import CarryoverSync
from revenue_engine.models.catalog import ProjectCatalog
from revenue_engine.models.timesheet import TimesheetEntry
from revenue_engine.readers.billing_config_reader import BillingConfigReader
from revenue_engine.readers.project_catalog_reader import ProjectCatalogReader
from revenue_engine.readers.tabular_reader import TabularReader
from revenue_engine.readers.timesheet_entry_reader import TimesheetEntryReader
from revenue_engine.resolvers.effective_config_resolver import EffectiveConfigResolver
from revenue_engine.services.google_sheets_service import GoogleSheetsService
from revenue_engine.services.retry_handler import RetryHandler
from revenue_engine.utils.logging_utils import sanitize_sensitive_data
from revenue_engine.validators.validation_report import ValidationReport

logger = logging.getLogger(__name__)


@dataclass
class EngineInputs:
    """Everything a billing run reads before computing."""

    entries: List[TimesheetEntry]
    resolver: EffectiveConfigResolver
    catalog: ProjectCatalog
    report: ValidationReport


def parse_month_option(ctx, param, value: Optional[str]) -> Optional[dt.date]:
    """Click callback turning ``YYYY-MM`` into the first day of the month."""
    if value is None:
        return None
    try:
        return month_start(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


SOURCE_OPTIONS = [
    click.option(
        "--entries",
        "entries_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Timesheet entries CSV (default: TIMESHEET_SPREADSHEET_ID)",
    ),
    click.option(
        "--overrides",
        "overrides_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Billing overrides CSV (default: OVERRIDES_SPREADSHEET_ID)",
    ),
    click.option(
        "--catalog",
        "catalog_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Project catalog CSV (default: CATALOG_SPREADSHEET_ID)",
    ),
]

LEDGER_OPTIONS = [
    click.option(
        "--ledger",
        "ledger_path",
        type=click.Path(dir_okay=False),
        default=None,
        help="Carryover ledger JSON file (default: LEDGER_FILE_PATH)",
    ),
    click.option(
        "--no-sync",
        is_flag=True,
        default=False,
        help="Compute without writing carryover to the ledger file",
    ),
]


def _apply(func: Callable, options) -> Callable:
    for option in reversed(options):
        func = option(func)
    return func


def source_options(func: Callable) -> Callable:
    """Add the entries, overrides and catalog source options."""
    return _apply(func, SOURCE_OPTIONS)


def input_options(func: Callable) -> Callable:
    """Add source and ledger options shared by billing commands."""
    return _apply(func, SOURCE_OPTIONS + LEDGER_OPTIONS)


def load_settings() -> RevenueEngineConfig:
    """Load settings, turning validation failures into ConfigurationError."""
    try:
        settings = get_config()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e.error_count()} error(s)",
            recovery_hint="Check the values in your .env file or environment",
        ) from e
    logger.debug(f"Settings: {sanitize_sensitive_data(settings.model_dump())}")
    return settings


class _SourceLoader:
    """Reads each input from a CSV path or the configured spreadsheet."""

    def __init__(self, settings: RevenueEngineConfig):
        self.settings = settings
        self._sheets_service: Optional[GoogleSheetsService] = None

    def _service(self) -> GoogleSheetsService:
        if self._sheets_service is None:
            try:
                self._sheets_service = GoogleSheetsService.from_config(self.settings)
            except DefaultCredentialsError as e:
                raise APIError(
                    "No Google credentials available",
                    recovery_hint="Set GOOGLE_PRIVATE_KEY and GOOGLE_CLIENT_EMAIL "
                    "or configure application default credentials",
                ) from e
        return self._sheets_service

    def read(
        self,
        reader_class: Callable[..., TabularReader],
        path: Optional[str],
        spreadsheet_id: Optional[str],
        option: str,
        env_name: str,
    ):
        try:
            if path:
                return reader_class().read_csv(path)
            if spreadsheet_id:
                return reader_class(self._service()).read_sheet(spreadsheet_id)
        except ValueError as e:
            raise DataValidationError(
                str(e), recovery_hint=f"Check the header row of the {option} input"
            ) from e
        raise ConfigurationError(
            f"No source for {option}",
            recovery_hint=f"Pass --{option} PATH or set {env_name}",
        )


def load_inputs(
    settings: RevenueEngineConfig,
    entries_path: Optional[str],
    overrides_path: Optional[str],
    catalog_path: Optional[str],
) -> EngineInputs:
    """Read entries, overrides and catalog into engine objects.

    Raises:
        ConfigurationError: If an input has neither a path nor a
            configured spreadsheet
    """
    loader = _SourceLoader(settings)
    report = ValidationReport()

    entries, entry_report = loader.read(
        TimesheetEntryReader,
        entries_path,
        settings.timesheet_spreadsheet_id,
        "entries",
        "TIMESHEET_SPREADSHEET_ID",
    )
    store, override_report = loader.read(
        BillingConfigReader,
        overrides_path,
        settings.overrides_spreadsheet_id,
        "overrides",
        "OVERRIDES_SPREADSHEET_ID",
    )
    catalog, catalog_report = loader.read(
        ProjectCatalogReader,
        catalog_path,
        settings.catalog_spreadsheet_id,
        "catalog",
        "CATALOG_SPREADSHEET_ID",
    )
    for part in (entry_report, override_report, catalog_report):
        report.merge(part)

    return EngineInputs(
        entries=entries,
        resolver=EffectiveConfigResolver.from_config(store, settings),
        catalog=catalog,
        report=report,
    )


def open_ledger(
    settings: RevenueEngineConfig, ledger_path: Optional[str], no_sync: bool
) -> CarryoverLedger:
    """Open the JSON ledger, or an in-memory copy of it for ``--no-sync``.

    The copy lets carryover flow between months of one run without
    touching the file.

    Raises:
        ProcessingError: If the ledger file cannot be loaded
    """
    try:
        file_ledger = JsonFileCarryoverLedger(ledger_path or settings.ledger_file_path)
    except LedgerFileError as e:
        raise ProcessingError(
            str(e), recovery_hint="Restore the ledger file from a backup or remove it"
        ) from e
    if no_sync:
        logger.info("Ledger sync disabled, using an in-memory copy")
        return InMemoryCarryoverLedger(file_ledger.all_entries())
    return file_ledger


def build_aggregator(
    settings: RevenueEngineConfig, inputs: EngineInputs, ledger: CarryoverLedger
) -> MonthlyBillingAggregator:
    sync = CarryoverSync(
        ledger,
        retry_handler=RetryHandler.from_config(settings),
        max_workers=settings.max_workers,
    )
    return MonthlyBillingAggregator(
        resolver=inputs.resolver,
        catalog=inputs.catalog,
        ledger=ledger,
        sync=sync,
        max_workers=settings.max_workers,
    )


def echo_input_report(report: ValidationReport, max_issues: int = 10) -> None:
    """Print reader issues, if any."""
    if not report.issues:
        return
    click.echo(format_warning(f"Input issues: {report.summary()}"))
    click.echo(report.format(max_issues=max_issues))
    click.echo()


def echo_sync_report(results) -> None:
    """Print ledger write failures collected on monthly results."""
    for result in results:
        sync_report = result.sync_report
        if sync_report is None:
            continue
        if sync_report.success:
            logger.debug(f"Ledger synced for {result.month:%Y-%m}")
            continue
        click.echo(
            format_warning(
                f"Ledger sync for {result.month:%Y-%m}: "
                f"{sync_report.failed} project(s) failed"
            )
        )
        for error in sync_report.errors:
            click.echo(format_info(f"  {error}"))
