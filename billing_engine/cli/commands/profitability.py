"""Profitability command."""

from typing import Optional, Tuple

import click

from billing_engine.cli.commands.common import load_settings, open_ledger
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import format_info, format_money, format_table
from billing_engine.reporting.profitability import ProfitabilityAnalyzer


@click.command(name="profitability")
@click.option(
    "--project-id",
    "project_ids",
    multiple=True,
    help="Project to analyze (repeatable, default: all active projects)",
)
@click.option(
    "--ledger-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Ledger directory with the CSV files (default: LEDGER_DIR)",
)
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
def profitability(project_ids: Tuple[str, ...], ledger_dir: Optional[str], debug: bool):
    """Print revenue, expenses, margin and time figures per project.

    Revenue counts SENT and PAID invoices only.

    Example:
        billing-cli profitability
        billing-cli profitability --project-id P1 --project-id P2
    """
    with with_error_handling(debug):
        settings = load_settings()
        ledger = open_ledger(ledger_dir, settings)
        analyzer = ProfitabilityAnalyzer(ledger)

        df = analyzer.portfolio_frame(list(project_ids) if project_ids else None)
        if df.empty:
            click.echo(format_info("No projects to analyze."))
            return

        headers = [
            "Project",
            "Revenue",
            "Expenses",
            "Profit",
            "Margin %",
            "Hours",
            "Invoiced h",
            "Efficiency %",
        ]
        rows = [
            [
                project_id,
                format_money(row["revenue"]),
                format_money(row["expenses"]),
                format_money(row["profit"]),
                f"{row['profit_margin']}",
                f"{row['time_tracked']}",
                f"{row['time_invoiced']}",
                f"{row['efficiency']}",
            ]
            for project_id, row in df.iterrows()
        ]
        click.echo(format_table(headers, rows))
        click.echo(format_info(f"{len(rows)} project(s) analyzed"))
