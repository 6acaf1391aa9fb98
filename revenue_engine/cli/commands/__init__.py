"""CLI commands."""

from revenue_engine.cli.commands.calculate import calculate
from revenue_engine.cli.commands.hierarchy import hierarchy
from revenue_engine.cli.commands.ledger import ledger
from revenue_engine.cli.commands.trend import trend
from revenue_engine.cli.commands.validate import validate

__all__ = ["calculate", "hierarchy", "ledger", "trend", "validate"]
