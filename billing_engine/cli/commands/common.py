"""Helpers shared by the CLI commands."""

import datetime as dt
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine.cli.error_handlers import ConfigurationError
from billing_engine.config.settings import BillingSystemConfig, get_config
from billing_engine.storage.csv_ledger import CsvLedgerRepository


def load_settings() -> BillingSystemConfig:
    """Load application settings, turning validation failures into a CLI error."""
    try:
        return get_config()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e}",
            recovery_hint="Check the values in your .env file",
        ) from e


def open_ledger(
    ledger_dir: Optional[str], settings: BillingSystemConfig
) -> CsvLedgerRepository:
    """Load the CSV ledger from ``ledger_dir`` (default LEDGER_DIR)."""
    return CsvLedgerRepository.open(ledger_dir or settings.ledger_dir)


def parse_date_input(date_str: str) -> dt.date:
    """Parse a date in YYYY-MM-DD format, or YYYY-MM for the first of the month.

    Raises:
        ValueError: If the format is invalid
    """
    try:
        return dt.datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        pass

    try:
        parsed = dt.datetime.strptime(date_str, "%Y-%m")
        return dt.date(parsed.year, parsed.month, 1)
    except ValueError:
        raise ValueError(
            f"Invalid date format: {date_str}. Expected YYYY-MM-DD or YYYY-MM"
        )


def date_option_callback(ctx, param, value: Optional[str]) -> Optional[dt.date]:
    """click callback converting a date option, reporting bad input as usage errors."""
    if value is None:
        return None
    try:
        return parse_date_input(value)
    except ValueError as e:
        raise click.BadParameter(str(e))
