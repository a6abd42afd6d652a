"""Error handling for CLI commands."""

import sys
import traceback
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine.cli.utils.formatters import format_error, format_warning
from billing_engine.exceptions import (
    BillingError,
    DuplicateInvoiceError,
    InvalidPeriodError,
    NoActiveContractError,
    ProjectNotFoundError,
    RecordAlreadyInvoicedError,
    StorageError,
    TransientStorageError,
)
from billing_engine.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
)


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""

    pass


class ProcessingError(CLIError):
    """Raised when a command finished with failed work units."""

    pass


def _report(title: str, message: str, hint: Optional[str] = None) -> None:
    click.echo(format_error(f"{title}: {message}"))
    if hint:
        click.echo(format_warning(f"Hint: {hint}"))


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Print a user-friendly message for ``error`` and pick an exit code.

    Args:
        error: The exception that occurred
        debug: Whether to show the full stack trace

    Returns:
        Exit code (1-9 for known error types, 130 on cancel, 255 otherwise)
    """
    if isinstance(error, ConfigurationError):
        _report("Configuration Error", error.message, error.recovery_hint)
        return 1

    elif isinstance(error, (InvalidPeriodError, ValidationError)):
        _report(
            "Invalid Input",
            str(error),
            "Check dates (YYYY-MM-DD, start before end) and percentages (0-100)",
        )
        return 2

    elif isinstance(error, NoActiveContractError):
        _report(
            "Missing Contract",
            str(error),
            f"Add an active {error.contract_type} contract to contracts.csv",
        )
        return 3

    elif isinstance(error, ProjectNotFoundError):
        _report("Unknown Project", str(error), "Verify the id in projects.csv")
        return 4

    elif isinstance(error, (DuplicateInvoiceError, RecordAlreadyInvoicedError)):
        _report("Already Invoiced", str(error))
        return 5

    elif isinstance(error, BillingError):
        _report("Billing Error", str(error))
        return 6

    elif isinstance(
        error, (TransientStorageError, RetryExhaustedException, CircuitBreakerError)
    ):
        _report(
            "Storage Unavailable",
            str(error),
            "The ledger store kept failing; wait a moment and run the command again",
        )
        return 7

    elif isinstance(error, StorageError):
        _report(
            "Storage Error",
            str(error),
            "Check --ledger-dir and the CSV files it contains",
        )
        return 8

    elif isinstance(error, ProcessingError):
        _report("Processing Error", error.message, error.recovery_hint)
        return 9

    elif isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"))
        return 130

    click.echo(format_error(f"Unexpected Error: {type(error).__name__}"))
    click.echo(str(error))

    if debug:
        click.echo("\nFull stack trace:")
        click.echo(traceback.format_exc())
    else:
        click.echo(format_warning("\nRun with --debug flag for full stack trace"))

    return 255


def with_error_handling(debug: bool = False):
    """
    Context manager turning exceptions into messages and exit codes.

    Example:
        @click.command()
        @click.option('--debug', is_flag=True)
        def my_command(debug):
            with with_error_handling(debug):
                ...
    """

    class ErrorHandler:
        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if isinstance(exc_val, Exception) and not isinstance(
                exc_val, click.exceptions.Exit
            ):
                exit_code = handle_cli_error(exc_val, self.show_debug)
                sys.exit(exit_code)
            return False

    return ErrorHandler(debug)
