"""Calculate command: preview a billing breakdown without invoicing."""

import datetime as dt
from typing import Optional, Tuple

import click
from pydantic import ValidationError

from billing_engine.cli.commands.common import (
    date_option_callback,
    load_settings,
    open_ledger,
)
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import format_info, format_money, format_table
from billing_engine.engine import MultiBillingEngine
from billing_engine.exceptions import ProjectNotFoundError
from billing_engine.models import MilestonePayment

MODELS = ("hourly", "retainer", "subscription", "fixed-fee")


def _parse_payment(raw: str) -> MilestonePayment:
    milestone_id, sep, amount = raw.partition("=")
    if not sep or not milestone_id.strip():
        raise click.BadParameter(f"Expected MILESTONE_ID=AMOUNT, got {raw!r}")
    try:
        return MilestonePayment(milestone_id=milestone_id.strip(), amount=amount.strip())
    except ValidationError as e:
        raise click.BadParameter(f"Invalid milestone payment {raw!r}: {e}")


def _payments_callback(ctx, param, values: Tuple[str, ...]):
    return [_parse_payment(v) for v in values]


@click.command(name="calculate")
@click.option("--project-id", required=True, help="Project to calculate")
@click.option(
    "--model",
    "model_name",
    type=click.Choice(MODELS),
    default="hourly",
    show_default=True,
    help="Billing model to apply",
)
@click.option(
    "--start-date",
    callback=date_option_callback,
    default=None,
    help="Window start (YYYY-MM-DD, default: first of this month)",
)
@click.option(
    "--end-date",
    callback=date_option_callback,
    default=None,
    help="Window end (YYYY-MM-DD, default: today)",
)
@click.option(
    "--tax-rate",
    type=click.FloatRange(min=0, max=100),
    default=None,
    help="Tax percentage (default: DEFAULT_TAX_RATE)",
)
@click.option(
    "--discount-rate",
    type=click.FloatRange(min=0, max=100),
    default=None,
    help="Discount percentage (default: DEFAULT_DISCOUNT_RATE)",
)
@click.option(
    "--milestone-payment",
    "payments",
    multiple=True,
    callback=_payments_callback,
    help="Declared milestone payment MILESTONE_ID=AMOUNT (fixed-fee, repeatable)",
)
@click.option(
    "--ledger-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Ledger directory with the CSV files (default: LEDGER_DIR)",
)
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
def calculate(
    project_id: str,
    model_name: str,
    start_date: Optional[dt.date],
    end_date: Optional[dt.date],
    tax_rate: Optional[float],
    discount_rate: Optional[float],
    payments,
    ledger_dir: Optional[str],
    debug: bool,
):
    """Print the billing breakdown of a project without creating an invoice.

    Example:
        billing-cli calculate --project-id P1 --tax-rate 10
        billing-cli calculate --project-id P1 --model retainer --start-date 2024-05-01
        billing-cli calculate --project-id P1 --model fixed-fee --milestone-payment M1=3000
    """
    with with_error_handling(debug):
        settings = load_settings()
        ledger = open_ledger(ledger_dir, settings)
        if ledger.find_project(project_id) is None:
            raise ProjectNotFoundError(project_id)

        engine = MultiBillingEngine(ledger, settings=settings, max_workers=1)
        config = engine.default_configuration(
            tax_rate=None if tax_rate is None else str(tax_rate),
            discount_rate=None if discount_rate is None else str(discount_rate),
        )

        today = dt.date.today()
        start = start_date or today.replace(day=1)
        end = end_date or today

        if model_name == "hourly":
            result = engine.calculate_hourly(project_id, start, end, config)
        elif model_name == "retainer":
            result = engine.calculate_retainer(project_id, start, end, config)
        elif model_name == "subscription":
            result = engine.calculate_subscription(
                project_id, dt.datetime.combine(end, dt.time.min), config
            )
        else:
            result = engine.calculate_fixed_fee(
                project_id, {"type": "FIXED_FEE", "milestone_payments": payments}, config
            )

        breakdown = result.breakdown
        currency = result.currency
        rows = [
            ["Labor", format_money(breakdown.labor, currency)],
            ["Expenses", format_money(breakdown.expenses, currency)],
            ["Discount", format_money(breakdown.discount, currency)],
            ["Tax", format_money(breakdown.tax, currency)],
            ["Total", format_money(breakdown.total, currency)],
        ]

        click.echo(
            format_info(f"{model_name} billing for {project_id}, {result.period.label()}")
        )
        click.echo(format_table(["Component", "Amount"], rows))

        details = []
        if result.time_entries:
            details.append(f"{len(result.time_entries)} time entries")
        if result.expenses:
            details.append(f"{len(result.expenses)} expenses")
        if result.retainer_usage:
            details.append(f"{len(result.retainer_usage)} retainer usage records")
        if result.ready_for_invoicing:
            details.append(
                f"{len(result.ready_for_invoicing)} milestones ready for invoicing"
            )
        if details:
            click.echo(format_info("Based on " + ", ".join(details)))
