"""Billing result types returned by every calculator.

BillingResult is the contract between the calculators and the invoice
generator: the generator only reads the breakdown, the period, and the
ledger records the result consumed.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from billing_engine.calculators.money import ZERO, Number, percentage_of, round_money
from billing_engine.config.billing import BillingConfiguration
from billing_engine.models import (
    DateRange,
    Expense,
    ProjectMilestone,
    RetainerUsage,
    TimeEntry,
)
from billing_engine.storage.base import ConsumedItems


@dataclass
class BillingBreakdown:
    """Decomposition of a billing total.

    Attributes:
        labor: Labor (or fee) component before discount and tax
        expenses: Billable expenses before discount and tax
        discount: subtotal × discount_rate / 100
        tax: (subtotal − discount) × tax_rate / 100
        total: subtotal − discount + tax

    Example:
        >>> breakdown = compute_breakdown(
        ...     Decimal("1000"), Decimal("50"),
        ...     BillingConfiguration(tax_rate=10),
        ... )
        >>> breakdown.tax, breakdown.total
        (Decimal('105.00'), Decimal('1155.00'))
    """

    labor: Decimal
    expenses: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.labor + self.expenses

    @property
    def taxable_amount(self) -> Decimal:
        return self.subtotal - self.discount


def compute_breakdown(
    labor: Number, expenses: Number, config: BillingConfiguration
) -> BillingBreakdown:
    """Apply discount and then tax to labor plus expenses.

    Args:
        labor: Labor component
        expenses: Expense component
        config: Billing configuration providing the percentages

    Returns:
        BillingBreakdown whose parts add up exactly to the total
    """
    labor = round_money(labor)
    expenses = round_money(expenses)
    subtotal = labor + expenses
    discount = percentage_of(subtotal, config.discount_rate)
    tax = percentage_of(subtotal - discount, config.tax_rate)
    return BillingBreakdown(
        labor=labor,
        expenses=expenses,
        discount=discount,
        tax=tax,
        total=subtotal - discount + tax,
    )


def empty_breakdown() -> BillingBreakdown:
    return BillingBreakdown(labor=ZERO, expenses=ZERO, discount=ZERO, tax=ZERO, total=ZERO)


@dataclass
class BillingResult:
    """Output of a billing calculation for one project.

    Attributes:
        amount: Net amount to invoice (equals breakdown.total)
        currency: ISO currency code
        period: Billed window; point-in-time for subscriptions and milestones
        breakdown: Labor/expenses/discount/tax/total decomposition
        time_entries: Time entries contributing to labor
        expenses: Expenses contributing to the expense component
        milestones: Completed milestones that were considered
        ready_for_invoicing: Milestones with a declared, unbilled payment
        retainer_usage: Usage records behind a retainer overage
    """

    amount: Decimal
    currency: str
    period: DateRange
    breakdown: BillingBreakdown
    time_entries: List[TimeEntry] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    milestones: List[ProjectMilestone] = field(default_factory=list)
    ready_for_invoicing: List[ProjectMilestone] = field(default_factory=list)
    retainer_usage: List[RetainerUsage] = field(default_factory=list)

    @property
    def is_billable(self) -> bool:
        """True when the result is worth an invoice (positive amount)."""
        return self.amount > 0

    def consumed_items(self) -> ConsumedItems:
        """Ledger records that an invoice built from this result consumes."""
        return ConsumedItems(
            time_entry_ids=[e.id for e in self.time_entries],
            expense_ids=list(
                dict.fromkeys(
                    [x.id for x in self.expenses] + [u.id for u in self.retainer_usage]
                )
            ),
            milestone_ids=[m.id for m in self.ready_for_invoicing],
        )


def build_result(
    labor: Number,
    expense_total: Number,
    config: BillingConfiguration,
    period: DateRange,
    **records,
) -> BillingResult:
    """Compute the breakdown and wrap it in a BillingResult."""
    breakdown = compute_breakdown(labor, expense_total, config)
    return BillingResult(
        amount=breakdown.total,
        currency=config.currency,
        period=period,
        breakdown=breakdown,
        **records,
    )
