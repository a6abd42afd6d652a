"""Read-only reporting over invoices and ledger data."""

from billing_engine.reporting.profitability import (
    ProfitabilityAnalyzer,
    ProfitabilityReport,
)

__all__ = [
    "ProfitabilityAnalyzer",
    "ProfitabilityReport",
]
