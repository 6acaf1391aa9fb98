"""
Configuration module for the revenue engine.
"""
from .logging_config import LoggingConfig, configure_logging, reset_logging
from .settings import (
    DEFAULT_FALLBACK_RATE,
    RevenueEngineConfig,
    get_config,
    load_config,
    reload_config,
)

__all__ = [
    "DEFAULT_FALLBACK_RATE",
    "RevenueEngineConfig",
    "get_config",
    "load_config",
    "reload_config",
    "LoggingConfig",
    "configure_logging",
    "reset_logging",
]
