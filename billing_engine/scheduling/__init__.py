"""Scheduled auto-invoicing.

- resolve_billing_period: window a billing cycle covers at a given moment
- AutoInvoicingScheduler: portfolio sweep over (project, contract) pairs
- SweepReport: aggregated outcome of a sweep
"""

from billing_engine.scheduling.auto_invoicer import AutoInvoicingScheduler, InvoicingTask
from billing_engine.scheduling.periods import resolve_billing_period
from billing_engine.scheduling.sweep_report import SweepReport, TaskOutcome, TaskResult

__all__ = [
    "AutoInvoicingScheduler",
    "InvoicingTask",
    "SweepReport",
    "TaskOutcome",
    "TaskResult",
    "resolve_billing_period",
]
