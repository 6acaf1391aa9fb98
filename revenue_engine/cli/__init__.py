"""Revenue Engine CLI.

This module provides a command-line interface for the revenue engine.
It includes commands for calculating monthly billing, showing the revenue
hierarchy, billing month ranges, inspecting the carryover ledger and
validating inputs.
"""

from typing import Optional

import click

from revenue_engine import __version__
from revenue_engine.cli.commands.calculate import calculate
from revenue_engine.cli.commands.hierarchy import hierarchy
from revenue_engine.cli.commands.ledger import ledger
from revenue_engine.cli.commands.trend import trend
from revenue_engine.cli.commands.validate import validate
from revenue_engine.config.logging_config import LoggingConfig, configure_logging
from revenue_engine.utils.logging_utils import LogContext, new_run_id


@click.group(
    help="Revenue Engine CLI - Calculate monthly billing and attribute revenue"
)
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, default=False, help="Show full stack traces")
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    default=None,
    help="Log level (default: LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, log_level: Optional[str]):
    """Revenue Engine CLI main entry point."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    level = "DEBUG" if debug and log_level is None else log_level
    configure_logging(LoggingConfig.from_env(log_level=level))
    run_id = new_run_id()
    ctx.obj["run_id"] = run_id
    ctx.with_resource(LogContext(run_id=run_id))


# Register commands
cli.add_command(calculate)
cli.add_command(hierarchy)
cli.add_command(trend)
cli.add_command(ledger)
cli.add_command(validate)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
