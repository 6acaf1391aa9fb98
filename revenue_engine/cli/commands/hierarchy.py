"""Revenue hierarchy command."""

import datetime as dt
import json
from typing import List, Optional

import click

from revenue_engine.aggregators.hierarchy_distributor import HierarchyDistributor
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
)
from revenue_engine.models.hierarchy import HierarchyLevel, HierarchyNode

INDENT = "  "


def render_tree(nodes: List[HierarchyNode], max_depth: Optional[int] = None) -> str:
    """Render hierarchy nodes as an indented outline.

    Example output::

        Acme Corp  40.00h  4,000.00
          Website  40.00h  4,000.00  @ 100.00/h
            Alice  24.00h  2,400.00
    """
    lines: List[str] = []

    def visit(node: HierarchyNode, depth: int) -> None:
        line = (
            f"{INDENT * depth}{node.label}  "
            f"{format_hours(node.hours)}  {format_money(node.revenue)}"
        )
        if node.level == HierarchyLevel.PROJECT and node.rate is not None:
            line += f"  @ {format_money(node.rate)}/h"
        lines.append(line)
        if max_depth is None or depth + 1 < max_depth:
            for child in node.children:
                visit(child, depth + 1)

    for node in nodes:
        visit(node, 0)
    return "\n".join(lines)


@click.command(name="hierarchy")
@click.option(
    "--month",
    required=True,
    callback=parse_month_option,
    help="Month to attribute (YYYY-MM format)",
)
@click.option(
    "--depth",
    type=click.IntRange(1, 5),
    default=None,
    help="Levels to show: 1 company ... 5 task (default: all)",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the tree as JSON",
)
@input_options
@click.pass_context
def hierarchy(
    ctx: click.Context,
    month: dt.date,
    depth: Optional[int],
    as_json: bool,
    entries_path: Optional[str],
    overrides_path: Optional[str],
    catalog_path: Optional[str],
    ledger_path: Optional[str],
    no_sync: bool,
):
    """Show billed revenue attributed Company → Project → Employee → Day → Task.

    Example:
        revenue-cli hierarchy --month 2026-01 --entries entries.csv \\
            --overrides overrides.csv --catalog catalog.csv --depth 3
    """
    debug = (ctx.obj or {}).get("debug", False)

    with with_error_handling(debug):
        settings = load_settings()
        inputs = load_inputs(settings, entries_path, overrides_path, catalog_path)
        ledger = open_ledger(settings, ledger_path, no_sync)
        if not as_json:
            echo_input_report(inputs.report)

        aggregator = build_aggregator(settings, inputs, ledger)
        with aggregator.sync:
            result = aggregator.calculate_month(inputs.entries, month)
        tree = HierarchyDistributor().distribute(result)

        if as_json:
            click.echo(json.dumps([node.to_dict() for node in tree], indent=2))
            return

        echo_sync_report([result])
        if not tree:
            click.echo(format_info(f"No billable projects in {month:%Y-%m}"))
            return

        click.echo(format_info(f"Revenue hierarchy for {month:%Y-%m}"))
        click.echo()
        click.echo(render_tree(tree, max_depth=depth))
        click.echo()
        click.echo(
            f"Total: {format_hours(result.total_billed_hours)}  "
            f"{format_money(result.total_billed_revenue)}"
        )
