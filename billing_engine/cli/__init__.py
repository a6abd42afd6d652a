"""Billing engine CLI.

Commands for running auto-invoicing sweeps against a CSV ledger, previewing
billing breakdowns, reporting profitability and maintaining overdue invoices.
"""

import click

from billing_engine import __version__
from billing_engine.cli.commands import (
    calculate,
    mark_overdue,
    profitability,
    run_auto_invoicing,
)
from billing_engine.config.logging_config import LoggingConfig, configure_logging
from billing_engine.config.settings import get_config


@click.group(help="Billing engine CLI - invoice projects under multiple billing models")
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log engine activity at DEBUG level")
def cli(verbose: bool):
    """Billing engine CLI main entry point."""
    if verbose:
        configure_logging(LoggingConfig.from_settings(get_config(), log_level="DEBUG"))


# Register commands
cli.add_command(run_auto_invoicing)
cli.add_command(calculate)
cli.add_command(profitability)
cli.add_command(mark_overdue)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
