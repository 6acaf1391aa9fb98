"""Carryover ledger storage and synchronisation."""

from revenue_engine.ledger.carryover_ledger import (
    CarryoverAvailability,
    CarryoverLedger,
    InMemoryCarryoverLedger,
    JsonFileCarryoverLedger,
    LedgerFileError,
    is_carryover_usable,
)
from revenue_engine.ledger.carryover_sync import CarryoverSync, SyncReport

__all__ = [
    "CarryoverAvailability",
    "CarryoverLedger",
    "InMemoryCarryoverLedger",
    "JsonFileCarryoverLedger",
    "LedgerFileError",
    "is_carryover_usable",
    "CarryoverSync",
    "SyncReport",
]
