"""Invoicing commands: scheduled sweeps and overdue maintenance."""

import datetime as dt
import time
from decimal import Decimal
from typing import Optional

import click

from billing_engine.cli.commands.common import (
    date_option_callback,
    load_settings,
    open_ledger,
)
from billing_engine.cli.error_handlers import ProcessingError, with_error_handling
from billing_engine.cli.utils.formatters import (
    format_info,
    format_money,
    format_success,
    format_table,
    format_warning,
)
from billing_engine.cli.utils.progress import ProgressTracker
from billing_engine.engine import MultiBillingEngine


def _as_of_moment(as_of: Optional[dt.date]) -> Optional[dt.datetime]:
    if as_of is None:
        return None
    return dt.datetime.combine(as_of, dt.time(23, 59, 59))


@click.command(name="run-auto-invoicing")
@click.option(
    "--ledger-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Ledger directory with the CSV files (default: LEDGER_DIR)",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads for the sweep (default: SCHEDULER_MAX_WORKERS)",
)
@click.option(
    "--as-of",
    callback=date_option_callback,
    default=None,
    help="Run the sweep as of the end of this day (YYYY-MM-DD)",
)
@click.option("--dry-run", is_flag=True, help="Run the sweep without saving the ledger")
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
def run_auto_invoicing(
    ledger_dir: Optional[str],
    workers: Optional[int],
    as_of: Optional[dt.date],
    dry_run: bool,
    debug: bool,
):
    """Generate invoices for every auto-invoice contract that is due.

    Contracts already invoiced for their current billing period are skipped,
    so running the command twice creates no duplicate invoices. The command
    exits with code 9 if any project failed; the others are still invoiced.

    Example:
        billing-cli run-auto-invoicing --ledger-dir ./ledger
        billing-cli run-auto-invoicing --workers 8 --dry-run
    """
    start_time = time.time()

    with with_error_handling(debug):
        settings = load_settings()
        tracker = ProgressTracker(
            ["Loading ledger", "Running auto-invoicing sweep", "Saving ledger"]
        )

        click.echo(tracker.get_current_message())
        ledger = open_ledger(ledger_dir, settings)
        tracker.advance(f"{len(ledger.find_active_projects())} active projects")

        click.echo(tracker.get_current_message())
        engine = MultiBillingEngine(ledger, settings=settings, max_workers=workers)
        report = engine.process_auto_invoicing(_as_of_moment(as_of))
        tracker.advance(report.summary())

        click.echo(tracker.get_current_message())
        if dry_run:
            tracker.advance("Dry run - ledger left unchanged")
        else:
            ledger.save()
            tracker.advance(f"Saved to {ledger.ledger_dir}")

        click.echo()
        click.echo(report.format())
        click.echo()

        if report.has_failures():
            raise ProcessingError(
                f"{report.failed_count} task(s) failed",
                recovery_hint=(
                    "Fix the failing projects and run again; "
                    "already invoiced contracts are skipped"
                ),
            )

        click.echo(format_success("Auto-invoicing complete"))
        click.echo(f"  Duration: {time.time() - start_time:.2f}s")


@click.command(name="mark-overdue")
@click.option(
    "--ledger-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Ledger directory with the CSV files (default: LEDGER_DIR)",
)
@click.option(
    "--apply-late-fees",
    is_flag=True,
    help="Also add a one-time late fee to overdue invoices",
)
@click.option(
    "--late-fee-percentage",
    type=click.FloatRange(min=0, max=100),
    default=None,
    help="Late fee percentage (default: LATE_FEE_PERCENTAGE)",
)
@click.option(
    "--as-of",
    callback=date_option_callback,
    default=None,
    help="Treat invoices due before the end of this day as overdue (YYYY-MM-DD)",
)
@click.option("--dry-run", is_flag=True, help="Report changes without saving the ledger")
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
def mark_overdue(
    ledger_dir: Optional[str],
    apply_late_fees: bool,
    late_fee_percentage: Optional[float],
    as_of: Optional[dt.date],
    dry_run: bool,
    debug: bool,
):
    """Move SENT invoices past their due date to OVERDUE.

    Example:
        billing-cli mark-overdue
        billing-cli mark-overdue --apply-late-fees --late-fee-percentage 2
    """
    with with_error_handling(debug):
        settings = load_settings()
        ledger = open_ledger(ledger_dir, settings)
        engine = MultiBillingEngine(ledger, settings=settings, max_workers=1)

        overdue = engine.mark_overdue_invoices(_as_of_moment(as_of))
        click.echo(format_info(f"{len(overdue)} invoice(s) marked overdue"))

        if apply_late_fees:
            percentage = (
                None if late_fee_percentage is None else Decimal(str(late_fee_percentage))
            )
            charged = engine.apply_late_fees(percentage)
            if charged:
                rows = [
                    [
                        i.invoice_number,
                        i.project_id,
                        format_money(i.late_fee, i.currency),
                        format_money(i.total, i.currency),
                    ]
                    for i in charged
                ]
                click.echo()
                click.echo(
                    format_table(["Invoice", "Project", "Late fee", "New total"], rows)
                )
            click.echo(format_info(f"{len(charged)} late fee(s) applied"))

        if dry_run:
            click.echo(format_warning("Dry run - ledger left unchanged"))
        else:
            ledger.save()
            click.echo(format_success("Invoice maintenance complete"))
