"""Monthly trend command."""

import datetime as dt
from typing import Optional

import click

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
    format_error,
    format_hours,
    format_info,
    format_money,
    format_success,
    format_table,
)
from revenue_engine.cli.utils.progress import ProgressTracker


@click.command(name="trend")
@click.option(
    "--start",
    required=True,
    callback=parse_month_option,
    help="First month (YYYY-MM format)",
)
@click.option(
    "--end",
    required=True,
    callback=parse_month_option,
    help="Last month, inclusive (YYYY-MM format)",
)
@input_options
@click.pass_context
def trend(
    ctx: click.Context,
    start: dt.date,
    end: dt.date,
    entries_path: Optional[str],
    overrides_path: Optional[str],
    catalog_path: Optional[str],
    ledger_path: Optional[str],
    no_sync: bool,
):
    """Bill consecutive months in order and print per-month totals.

    Each month's carryover feeds the next month, so months are always
    billed in calendar order.

    Example:
        revenue-cli trend --start 2026-01 --end 2026-06 --entries entries.csv \\
            --overrides overrides.csv --catalog catalog.csv --no-sync
    """
    debug = (ctx.obj or {}).get("debug", False)

    if start > end:
        click.echo(format_error("--start must be before or equal to --end"))
        raise click.Abort()

    with with_error_handling(debug):
        click.echo(
            format_info(f"Calculating trend from {start:%Y-%m} to {end:%Y-%m}...")
        )
        tracker = ProgressTracker(["Reading inputs", "Billing months", "Complete"])

        click.echo(tracker.get_current_message())
        settings = load_settings()
        inputs = load_inputs(settings, entries_path, overrides_path, catalog_path)
        ledger = open_ledger(settings, ledger_path, no_sync)
        tracker.advance(f"Read {len(inputs.entries)} entries")
        echo_input_report(inputs.report)

        click.echo(tracker.get_current_message())
        aggregator = build_aggregator(settings, inputs, ledger)
        with aggregator.sync:
            results = aggregator.calculate_range(inputs.entries, start, end)
        tracker.advance(f"Billed {len(results)} months")

        click.echo(tracker.get_current_message())
        click.echo()
        rows = [
            [
                f"{result.month:%Y-%m}",
                str(len(result.active_projects)),
                format_hours(result.total_billed_hours),
                format_hours(sum(p.carryover_out for p in result.projects)),
                format_money(result.total_base_revenue),
                format_money(result.total_billed_revenue),
            ]
            for result in results
        ]
        click.echo(
            format_table(
                [
                    "Month",
                    "Projects",
                    "Billed",
                    "Carryover Out",
                    "Base Revenue",
                    "Revenue",
                ],
                rows,
            )
        )
        echo_sync_report(results)

        click.echo()
        total = sum(result.total_billed_revenue for result in results)
        click.echo(format_success(f"Total revenue: {format_money(total)}"))
