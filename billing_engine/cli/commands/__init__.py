"""CLI commands."""

from billing_engine.cli.commands.calculate import calculate
from billing_engine.cli.commands.invoicing import mark_overdue, run_auto_invoicing
from billing_engine.cli.commands.profitability import profitability

__all__ = ["calculate", "mark_overdue", "profitability", "run_auto_invoicing"]
