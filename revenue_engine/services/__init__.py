"""
Service layer for external integrations.
"""
from .google_sheets_service import GoogleSheetsService
from .retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
    RetryHandler,
    is_transient_error,
)

__all__ = [
    "GoogleSheetsService",
    "RetryHandler",
    "RetryExhaustedException",
    "CircuitBreakerError",
    "is_transient_error",
]
