"""Project profitability analysis.

Revenue counts only realized invoices (SENT or PAID). Expenses are a
cost-accounting view: every expense counts, billable or not.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

import pandas as pd

from billing_engine.calculators.money import HUNDRED, ZERO, round_money, sum_money
from billing_engine.exceptions import ProjectNotFoundError
from billing_engine.models import REVENUE_INVOICE_STATUSES
from billing_engine.storage.base import BillingRepository

logger = logging.getLogger(__name__)


@dataclass
class ProfitabilityReport:
    """Profitability figures for one project.

    Attributes:
        project_id: Analyzed project
        revenue: Total of SENT and PAID invoices
        expenses: Total of all project expenses
        profit: revenue - expenses
        profit_margin: profit / revenue × 100, or 0 without revenue
        time_tracked: Hours across all time entries
        time_invoiced: Hours on entries linked to an invoice
        billable_hours: Hours on billable entries
        non_billable_hours: Hours on non-billable entries
        efficiency: billable_hours / time_tracked × 100, or 0 without time

    Example:
        >>> report = ProfitabilityAnalyzer(repository).analyze("P1")
        >>> report.profit_margin
        Decimal('75.00')
    """

    project_id: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    profit_margin: Decimal
    time_tracked: Decimal
    time_invoiced: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    efficiency: Decimal


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return round_money(part / whole * HUNDRED)


class ProfitabilityAnalyzer:
    """Combines invoices, expenses and time entries into margin figures."""

    def __init__(self, repository: BillingRepository):
        self.repository = repository

    def analyze(self, project_id: str) -> ProfitabilityReport:
        invoices = self.repository.find_invoices(
            project_id=project_id, statuses=REVENUE_INVOICE_STATUSES
        )
        expenses = self.repository.find_expenses(project_id)
        entries = self.repository.find_time_entries(project_id)

        revenue = sum_money(i.total for i in invoices)
        expense_total = sum_money(x.amount for x in expenses)
        profit = revenue - expense_total

        time_tracked = sum((e.hours for e in entries), Decimal("0"))
        time_invoiced = sum(
            (e.hours for e in entries if e.invoice_id is not None), Decimal("0")
        )
        billable_hours = sum((e.hours for e in entries if e.billable), Decimal("0"))

        report = ProfitabilityReport(
            project_id=project_id,
            revenue=revenue,
            expenses=expense_total,
            profit=profit,
            profit_margin=_percentage(profit, revenue),
            time_tracked=time_tracked,
            time_invoiced=time_invoiced,
            billable_hours=billable_hours,
            non_billable_hours=time_tracked - billable_hours,
            efficiency=_percentage(billable_hours, time_tracked),
        )

        logger.debug(
            f"Profitability for {project_id}: revenue={revenue}, "
            f"expenses={expense_total}, margin={report.profit_margin}%"
        )
        return report

    def portfolio_frame(self, project_ids: Optional[Iterable[str]] = None) -> pd.DataFrame:
        """Build a DataFrame with one profitability row per project.

        Args:
            project_ids: Projects to include (default every active project)

        Returns:
            DataFrame indexed by project_id, sorted by profit descending

        Raises:
            ProjectNotFoundError: If an explicitly requested project is unknown
        """
        if project_ids is None:
            ids: List[str] = [p.id for p in self.repository.find_active_projects()]
        else:
            ids = list(project_ids)
            for project_id in ids:
                if self.repository.find_project(project_id) is None:
                    raise ProjectNotFoundError(project_id)

        columns = [f for f in ProfitabilityReport.__dataclass_fields__]
        if not ids:
            return pd.DataFrame(columns=columns).set_index("project_id")

        rows = [asdict(self.analyze(project_id)) for project_id in ids]
        df = pd.DataFrame(rows, columns=columns).set_index("project_id")
        return df.sort_values("profit", ascending=False, kind="stable")
