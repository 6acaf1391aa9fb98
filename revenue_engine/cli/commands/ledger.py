"""List carryover ledger rows command."""

import datetime as dt
from typing import Optional

import click

from revenue_engine.cli.commands.common import (
    load_settings,
    open_ledger,
    parse_month_option,
)
from revenue_engine.cli.error_handlers import with_error_handling
from revenue_engine.cli.utils.formatters import (
    format_hours,
    format_info,
    format_table,
)
from revenue_engine.ledger.carryover_ledger import is_carryover_usable
from revenue_engine.models.billing_config import CarryoverPolicy


@click.command(name="ledger")
@click.option("--project", required=True, type=str, help="Project id to list")
@click.option(
    "--ledger",
    "ledger_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Carryover ledger JSON file (default: LEDGER_FILE_PATH)",
)
@click.option(
    "--as-of",
    callback=parse_month_option,
    default=None,
    help="Show usable carryover for this target month (YYYY-MM format)",
)
@click.option(
    "--expiry-months",
    type=click.IntRange(min=1),
    default=None,
    help="Carryover expiry used with --as-of (default: no expiry)",
)
@click.pass_context
def ledger(
    ctx: click.Context,
    project: str,
    ledger_path: Optional[str],
    as_of: Optional[dt.date],
    expiry_months: Optional[int],
):
    """List a project's carryover ledger rows, oldest first.

    Example:
        revenue-cli ledger --project P-100
        revenue-cli ledger --project P-100 --as-of 2026-04 --expiry-months 3
    """
    debug = (ctx.obj or {}).get("debug", False)

    with with_error_handling(debug):
        settings = load_settings()
        carryover_ledger = open_ledger(settings, ledger_path, no_sync=False)
        rows = carryover_ledger.entries_for_project(project)

        if not rows:
            click.echo(format_info(f"No ledger rows for project {project}"))
            return

        headers = ["Source Month", "Carryover", "Worked", "Maximum", "Consumed In"]
        if as_of is not None:
            headers.append(f"Usable {as_of:%Y-%m}")

        table_rows = []
        for row in rows:
            cells = [
                f"{row.source_month:%Y-%m}",
                format_hours(row.carryover_hours),
                format_hours(row.actual_hours_worked),
                format_hours(row.maximum_applied)
                if row.maximum_applied is not None
                else "-",
                f"{row.consumed_in:%Y-%m}" if row.consumed_in else "-",
            ]
            if as_of is not None:
                usable = is_carryover_usable(row, as_of, expiry_months)
                cells.append("yes" if usable else "no")
            table_rows.append(cells)

        click.echo(format_table(headers, table_rows))

        if as_of is not None:
            availability = carryover_ledger.available_carryover(
                project,
                as_of,
                CarryoverPolicy(enabled=True, expiry_months=expiry_months),
            )
            click.echo(
                format_info(
                    f"Available for {as_of:%Y-%m}: {format_hours(availability.hours)}"
                )
            )
