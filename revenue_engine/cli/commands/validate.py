"""Validate billing inputs command."""

import datetime as dt
import sys
from typing import Optional

import click

from revenue_engine.cli.commands.common import (
    load_inputs,
    load_settings,
    parse_month_option,
    source_options,
)
from revenue_engine.cli.error_handlers import with_error_handling
from revenue_engine.cli.utils.formatters import (
    format_error,
    format_info,
    format_success,
    format_warning,
)
from revenue_engine.validators.billing_validators import BillingRuleValidators
from revenue_engine.validators.validation_report import ValidationSeverity


@click.command(name="validate")
@click.option(
    "--month",
    required=True,
    callback=parse_month_option,
    help="Month whose entries and configuration to check (YYYY-MM format)",
)
@click.option(
    "--severity",
    type=click.Choice(["error", "warning", "info"], case_sensitive=False),
    default="warning",
    help="Minimum severity level to display (default: warning)",
)
@source_options
@click.pass_context
def validate(
    ctx: click.Context,
    month: dt.date,
    severity: str,
    entries_path: Optional[str],
    overrides_path: Optional[str],
    catalog_path: Optional[str],
):
    """Check inputs and effective configuration before billing a month.

    Checks for:
    - Rows rejected by the readers
    - Entries of projects missing from the catalog
    - Minimum hours above maximum hours
    - Projects billed at the default rate

    Returns exit code 1 if errors are found.

    Example:
        revenue-cli validate --month 2026-01 --entries entries.csv \\
            --overrides overrides.csv --catalog catalog.csv
    """
    debug = (ctx.obj or {}).get("debug", False)

    with with_error_handling(debug):
        click.echo(format_info(f"Validating inputs for {month:%Y-%m}..."))
        settings = load_settings()
        inputs = load_inputs(settings, entries_path, overrides_path, catalog_path)

        report = inputs.report
        month_report = BillingRuleValidators.validate_month(
            inputs.entries, month, inputs.resolver, inputs.catalog
        )
        # Readers already checked entry durations; unknown projects repeat per entry
        report.merge(month_report, skip_duplicates=True)

        severity_level = ValidationSeverity[severity.upper()]
        shown = [i for i in report.issues if i.severity >= severity_level]

        click.echo()
        click.echo("=" * 60)
        click.echo("Validation Summary")
        click.echo("=" * 60)
        click.echo(f"Entries read:     {len(inputs.entries)}")
        click.echo(f"Errors:           {report.error_count}")
        click.echo(f"Warnings:         {report.warning_count}")
        click.echo(f"Info:             {report.info_count}")
        by_project = report.count_by_project()
        if by_project:
            counts = ", ".join(f"{pid} ({n})" for pid, n in sorted(by_project.items()))
            click.echo(f"By project:       {counts}")
        click.echo()

        for issue in sorted(shown, key=lambda i: -i.severity):
            if issue.severity == ValidationSeverity.ERROR:
                click.echo(format_error(str(issue)))
            elif issue.severity == ValidationSeverity.WARNING:
                click.echo(format_warning(str(issue)))
            else:
                click.echo(format_info(str(issue)))

        if report.has_errors():
            click.echo()
            click.echo(format_error("Validation failed"))
            sys.exit(1)

        click.echo(format_success("Validation passed"))
