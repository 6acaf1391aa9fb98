"""Error handling for CLI commands."""

import sys
import traceback
from typing import Optional

import click
from googleapiclient.errors import HttpError

from revenue_engine.aggregators.monthly_billing_aggregator import (
    ConfigurationConflictError,
)
from revenue_engine.cli.utils.formatters import format_error, format_warning
from revenue_engine.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
)


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""

    pass


class APIError(CLIError):
    """Error related to Google API calls."""

    pass


class DataValidationError(CLIError):
    """Error related to input data validation."""

    pass


class ProcessingError(CLIError):
    """Error related to billing or ledger processing."""

    pass


_CLI_ERROR_CODES = (
    (ConfigurationError, "Configuration Error", 1),
    (APIError, "API Error", 2),
    (DataValidationError, "Data Validation Error", 3),
    (ProcessingError, "Processing Error", 4),
)

_HTTP_ERRORS = {
    401: (
        "Authentication Failed",
        "Check your service account credentials in the .env file",
        5,
    ),
    403: (
        "Permission Denied",
        "Ensure your service account has access to the spreadsheet",
        6,
    ),
    404: ("Resource Not Found", "Verify the spreadsheet ID and range", 7),
    429: (
        "Rate Limit Exceeded",
        "Wait a few minutes before retrying, or reduce concurrent requests",
        8,
    ),
}


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Handle CLI errors with user-friendly messages.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code (1-9 for known error types, 130 for cancellation,
        255 otherwise)
    """
    for error_type, title, code in _CLI_ERROR_CODES:
        if isinstance(error, error_type):
            click.echo(format_error(f"{title}: {error.message}"))
            if error.recovery_hint:
                click.echo(format_warning(f"Hint: {error.recovery_hint}"))
            return code

    if isinstance(error, ConfigurationConflictError):
        click.echo(format_error(f"Configuration Error: {error}"))
        click.echo(
            format_warning(
                "Hint: Add an override so the minimum does not exceed the maximum"
            )
        )
        return 1

    if isinstance(error, (RetryExhaustedException, CircuitBreakerError)):
        click.echo(format_error(f"API Error: {error}"))
        click.echo(format_warning("Hint: Check network access and retry later"))
        return 2

    if isinstance(error, HttpError):
        status_code = error.resp.status
        if status_code in _HTTP_ERRORS:
            title, hint, code = _HTTP_ERRORS[status_code]
            click.echo(format_error(title))
            click.echo(format_warning(f"Hint: {hint}"))
            return code

        click.echo(format_error(f"Google API Error (HTTP {status_code})"))
        click.echo(format_warning(f"Details: {str(error)}"))
        return 9

    if isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"))
        return 130

    click.echo(format_error(f"Unexpected Error: {type(error).__name__}"))
    click.echo(str(error))

    if debug:
        click.echo("\nFull stack trace:")
        click.echo(
            "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        )
    else:
        click.echo(format_warning("\nRun with --debug flag for full stack trace"))

    return 255


_PASSTHROUGH = (SystemExit, click.exceptions.Exit, click.ClickException)


def with_error_handling(debug: bool = False):
    """
    Context manager adding standardized error handling to CLI commands.

    Args:
        debug: Whether to show full stack traces

    Example:
        @click.command()
        def my_command():
            with with_error_handling(debug):
                # Command implementation
                pass
    """

    class ErrorHandler:
        """Context manager for error handling."""

        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None and not isinstance(exc_val, _PASSTHROUGH):
                sys.exit(handle_cli_error(exc_val, self.show_debug))
            return False

    return ErrorHandler(debug)
