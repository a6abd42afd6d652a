"""Period calculators for every supported billing arrangement.

This module implements the four single-model calculations:
- Hourly: billable time entries plus billable expenses over a window
- Fixed fee / milestone: declared payments for completed milestones
- Retainer: service consumption above the retainer balance
- Subscription: the recurring charge of a subscription contract

Every calculation is read-only. Records are only marked invoiced when an
invoice built from the result is stored (see InvoiceGenerator).
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Union

from billing_engine.calculators.billing_models import (
    BillingModel,
    FixedFeeModel,
    HourlyModel,
    RetainerModel,
    SubscriptionModel,
)
from billing_engine.calculators.billing_result import BillingResult, build_result
from billing_engine.calculators.money import ZERO, sum_money
from billing_engine.config.billing import BillingConfiguration
from billing_engine.exceptions import InvalidPeriodError, NoActiveContractError
from billing_engine.models import (
    UNINVOICED_TIME_ENTRY_STATUSES,
    ContractType,
    DateRange,
    ExpenseCategory,
    MilestonePayment,
    RetainerUsage,
    TimeEntry,
)
from billing_engine.storage.base import BillingRepository

logger = logging.getLogger(__name__)

Moment = Union[dt.date, dt.datetime]


def to_period(start_date: Moment, end_date: Moment) -> DateRange:
    """Build a billing window, widening bare dates to whole days.

    Raises:
        InvalidPeriodError: If start_date is after end_date
    """
    start = _as_datetime(start_date, dt.time.min)
    end = _as_datetime(end_date, dt.time.max)
    if start > end:
        raise InvalidPeriodError(
            f"Billing period start {start.isoformat()} is after end {end.isoformat()}"
        )
    return DateRange(start=start, end=end)


def _as_datetime(value: Moment, default_time: dt.time) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    return dt.datetime.combine(value, default_time)


def _entry_amount(entry: TimeEntry, default_rate: Optional[Decimal]) -> Decimal:
    if default_rate is not None and entry.rate == ZERO and entry.amount == ZERO:
        return entry.hours * default_rate
    return entry.amount


class BillingCalculator:
    """Computes BillingResults for a project from ledger data.

    Args:
        repository: Data-access collaborator providing ledger records

    Example:
        >>> calculator = BillingCalculator(repository)
        >>> result = calculator.calculate_hourly(
        ...     "P1", dt.datetime(2024, 5, 1), dt.datetime(2024, 5, 31),
        ...     BillingConfiguration(tax_rate=10),
        ... )
        >>> result.breakdown.total
        Decimal('1155.00')
    """

    def __init__(self, repository: BillingRepository):
        self.repository = repository

    def calculate_hourly(
        self,
        project_id: str,
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
        default_rate: Optional[Decimal] = None,
    ) -> BillingResult:
        """Bill un-invoiced billable time and billable expenses in a window.

        An empty window is not an error; it yields a zero-amount result.
        While the project has an active RETAINER contract, SERVICES expenses
        are left to the retainer calculation.

        Args:
            default_rate: Hourly rate for entries tracked without rate or amount

        Raises:
            InvalidPeriodError: If start_date is after end_date
        """
        period = to_period(start_date, end_date)

        time_entries = self.repository.find_time_entries(
            project_id,
            period=period,
            billable=True,
            statuses=UNINVOICED_TIME_ENTRY_STATUSES,
            uninvoiced_only=True,
        )
        expenses = self.repository.find_expenses(
            project_id, period=period, billable=True, uninvoiced_only=True
        )
        if self.repository.find_active_contract(project_id, ContractType.RETAINER):
            # Service expenses are retainer usage; only the overage is billed.
            expenses = [x for x in expenses if x.category != ExpenseCategory.SERVICES]

        labor = sum_money(_entry_amount(e, default_rate) for e in time_entries)
        expense_total = sum_money(x.amount for x in expenses)

        logger.debug(
            f"Hourly billing for {project_id} over {period.label()}: "
            f"{len(time_entries)} entries, {len(expenses)} expenses, "
            f"labor={labor}, expenses={expense_total}"
        )

        return build_result(
            labor,
            expense_total,
            config,
            period,
            time_entries=time_entries,
            expenses=expenses,
        )

    def calculate_fixed_fee(
        self,
        project_id: str,
        billing_model: FixedFeeModel,
        config: BillingConfiguration,
        as_of: Optional[dt.datetime] = None,
    ) -> BillingResult:
        """Bill declared payments for completed, not yet invoiced milestones.

        A completed milestone without a matching entry in
        ``billing_model.milestone_payments`` contributes nothing and is left
        out of ``ready_for_invoicing``. When several payments name the same
        milestone, the first one wins.

        Args:
            project_id: Project to bill
            billing_model: Fixed-fee model carrying the milestone payments
            config: Billing configuration
            as_of: Informational billing moment (default now)
        """
        period = DateRange.at(as_of or dt.datetime.now())
        milestones = self.repository.find_completed_milestones(project_id)

        payments: Dict[str, MilestonePayment] = {}
        for payment in billing_model.milestone_payments:
            payments.setdefault(payment.milestone_id, payment)

        ready = [m for m in milestones if m.id in payments and not m.is_invoiced]
        labor = sum_money(payments[m.id].amount for m in ready)

        skipped = [m.id for m in milestones if m.is_invoiced and m.id in payments]
        if skipped:
            logger.debug(f"Milestones already invoiced for {project_id}: {skipped}")

        return build_result(
            labor,
            ZERO,
            config,
            period,
            milestones=milestones,
            ready_for_invoicing=ready,
        )

    def calculate_retainer(
        self,
        project_id: str,
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
    ) -> BillingResult:
        """Bill service consumption above the retainer balance.

        Only the overage, ``max(0, used - retainer_amount)``, is billed.
        Service expenses already on an invoice do not count as usage.

        Raises:
            NoActiveContractError: If the project has no active RETAINER contract
            InvalidPeriodError: If start_date is after end_date
        """
        contract = self.repository.find_active_contract(
            project_id, ContractType.RETAINER
        )
        if contract is None:
            raise NoActiveContractError(project_id, ContractType.RETAINER.value)

        period = to_period(start_date, end_date)
        service_expenses = self.repository.find_expenses(
            project_id, period=period, category=ExpenseCategory.SERVICES,
            uninvoiced_only=True,
        )
        usage: List[RetainerUsage] = [
            RetainerUsage.from_expense(x) for x in service_expenses
        ]

        used = sum_money(u.amount for u in usage)
        retainer_amount = contract.retainer_amount or Decimal("0")
        overage = max(ZERO, used - retainer_amount)

        logger.debug(
            f"Retainer usage for {project_id} over {period.label()}: "
            f"used={used}, retainer={retainer_amount}, overage={overage}"
        )

        return build_result(overage, ZERO, config, period, retainer_usage=usage)

    def calculate_subscription(
        self,
        project_id: str,
        billing_period: dt.datetime,
        config: BillingConfiguration,
    ) -> BillingResult:
        """Bill one recurring charge at ``billing_period``.

        Raises:
            NoActiveContractError: If the project has no active SUBSCRIPTION contract
        """
        contract = self.repository.find_active_contract(
            project_id, ContractType.SUBSCRIPTION
        )
        if contract is None:
            raise NoActiveContractError(project_id, ContractType.SUBSCRIPTION.value)

        moment = _as_datetime(billing_period, dt.time.min)
        return build_result(
            contract.fixed_amount or ZERO, ZERO, config, DateRange.at(moment)
        )

    def calculate_for_model(
        self,
        project_id: str,
        model: BillingModel,
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
        as_of: Optional[dt.datetime] = None,
    ) -> BillingResult:
        """Dispatch a typed billing model to its calculator.

        Raises:
            TypeError: If ``model`` is not one of the BillingModel variants
        """
        if isinstance(model, HourlyModel):
            return self.calculate_hourly(
                project_id, start_date, end_date, config, default_rate=model.hourly_rate
            )
        if isinstance(model, FixedFeeModel):
            return self.calculate_fixed_fee(project_id, model, config, as_of=as_of)
        if isinstance(model, RetainerModel):
            return self.calculate_retainer(project_id, start_date, end_date, config)
        if isinstance(model, SubscriptionModel):
            return self.calculate_subscription(
                project_id, as_of or _as_datetime(start_date, dt.time.min), config
            )
        raise TypeError(f"Unhandled billing model variant: {type(model).__name__}")
