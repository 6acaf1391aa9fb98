"""Monthly billing calculation and hierarchical revenue attribution engine."""

__version__ = "1.0.0"
