"""Calculate monthly billing command."""

import datetime as dt
import time
from typing import Optional

import click

from revenue_engine.calculators.billing_calculator import format_adjustment
from revenue_engine.cli.commands.common import (
    build_aggregator,
    echo_input_report,
    echo_sync_report,
    input_options,
    load_inputs,
    load_settings,
    open_ledger,
    parse_month_option,
)
from revenue_engine.cli.error_handlers import with_error_handling
from revenue_engine.cli.utils.formatters import (
    format_hours,
    format_info,
    format_money,
    format_success,
    format_table,
)
from revenue_engine.cli.utils.progress import ProgressTracker
from revenue_engine.models.billing_result import MonthlyBillingResult

TABLE_HEADERS = [
    "Company",
    "Project",
    "Rounded",
    "Carryover In",
    "Billed",
    "Rate",
    "Revenue",
    "Adjustment",
]


def result_rows(result: MonthlyBillingResult):
    """Table rows for a month, one per active project, grouped by company."""
    rows = []
    for company in result.companies:
        for project in company.projects:
            if not project.has_activity:
                continue
            rows.append(
                [
                    company.client_name,
                    project.project_name,
                    format_hours(project.raw_rounded_hours),
                    format_hours(project.carryover_in),
                    format_hours(project.billed_hours),
                    format_money(project.rate),
                    format_money(project.billed_revenue),
                    format_adjustment(project),
                ]
            )
    return rows


@click.command(name="calculate")
@click.option(
    "--month",
    required=True,
    callback=parse_month_option,
    help="Month to bill (YYYY-MM format)",
)
@input_options
@click.pass_context
def calculate(
    ctx: click.Context,
    month: dt.date,
    entries_path: Optional[str],
    overrides_path: Optional[str],
    catalog_path: Optional[str],
    ledger_path: Optional[str],
    no_sync: bool,
):
    """Calculate billed hours and revenue for one month.

    Task time is rounded per task, minimum and maximum limits and carryover
    are applied, and the month's carryover is written to the ledger unless
    --no-sync is given.

    Example:
        revenue-cli calculate --month 2026-01 --entries entries.csv \\
            --overrides overrides.csv --catalog catalog.csv
    """
    debug = (ctx.obj or {}).get("debug", False)
    start_time = time.time()

    with with_error_handling(debug):
        click.echo(format_info(f"Calculating billing for {month:%Y-%m}..."))
        tracker = ProgressTracker(
            ["Reading inputs", "Calculating billing", "Complete"]
        )

        click.echo(tracker.get_current_message())
        settings = load_settings()
        inputs = load_inputs(settings, entries_path, overrides_path, catalog_path)
        ledger = open_ledger(settings, ledger_path, no_sync)
        tracker.advance(
            f"Read {len(inputs.entries)} entries, {len(inputs.catalog)} projects"
        )
        echo_input_report(inputs.report)

        click.echo(tracker.get_current_message())
        aggregator = build_aggregator(settings, inputs, ledger)
        with aggregator.sync:
            result = aggregator.calculate_month(inputs.entries, month)
        tracker.advance(f"Billed {len(result.active_projects)} projects")

        click.echo(tracker.get_current_message())
        click.echo()
        rows = result_rows(result)
        if rows:
            click.echo(format_table(TABLE_HEADERS, rows))
        else:
            click.echo(format_info("No billable projects in this month"))

        if result.dropped_unknown_project:
            click.echo(
                format_info(
                    f"Excluded {result.dropped_unknown_project} entries for unknown "
                    f"projects: {', '.join(sorted(result.dropped_project_ids))}"
                )
            )
        echo_sync_report([result])

        click.echo()
        click.echo(format_success("Billing calculated successfully!"))
        click.echo()
        click.echo("Summary:")
        click.echo(f"  Billed hours:   {format_hours(result.total_billed_hours)}")
        click.echo(f"  Base revenue:   {format_money(result.total_base_revenue)}")
        click.echo(f"  Billed revenue: {format_money(result.total_billed_revenue)}")
        click.echo(f"  Ledger synced:  {'no' if no_sync else 'yes'}")
        click.echo(f"  Duration:       {time.time() - start_time:.2f}s")
