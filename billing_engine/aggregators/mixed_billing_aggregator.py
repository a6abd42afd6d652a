"""Mixed-model billing aggregator.

This module combines the results of several billing models into a single
BillingResult. Only the labor and expense contributions of each sub-result
are reused; discount and tax are derived once on the combined subtotal so
that nothing is taxed twice.
"""

import datetime as dt
import logging
from typing import Any, Iterable, List, Mapping, Optional, TypeVar, Union

from billing_engine.calculators.billing_calculator import (
    BillingCalculator,
    Moment,
    to_period,
)
from billing_engine.calculators.billing_models import BillingModel, parse_billing_models
from billing_engine.calculators.billing_result import BillingResult, build_result
from billing_engine.calculators.money import sum_money
from billing_engine.config.billing import BillingConfiguration

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _merge_by_id(groups: Iterable[List[T]]) -> List[T]:
    merged = {}
    for group in groups:
        for record in group:
            merged.setdefault(record.id, record)
    return list(merged.values())


class MixedBillingAggregator:
    """Bills a project under several billing models at once.

    The aggregator:
    1. Validates the models, dropping types this version does not know
    2. Runs each model through its calculator
    3. Sums labor and expenses across the sub-results
    4. Merges the contributing ledger records (de-duplicated by id)
    5. Applies discount and tax once to the combined subtotal

    Args:
        calculator: Calculator used for each individual model

    Example:
        >>> aggregator = MixedBillingAggregator(BillingCalculator(repository))
        >>> result = aggregator.calculate_mixed(
        ...     "P1",
        ...     [{"type": "HOURLY"}, {"type": "FIXED_FEE", "milestone_payments": [...]}],
        ...     dt.datetime(2024, 5, 1), dt.datetime(2024, 5, 31),
        ...     BillingConfiguration(tax_rate=10, discount_rate=5),
        ... )
    """

    def __init__(self, calculator: BillingCalculator):
        self.calculator = calculator

    def calculate_mixed(
        self,
        project_id: str,
        billing_models: Iterable[Union[Mapping[str, Any], BillingModel]],
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
        as_of: Optional[dt.datetime] = None,
    ) -> BillingResult:
        """Combine every model's contribution into one BillingResult.

        Args:
            project_id: Project to bill
            billing_models: Typed models or raw dictionaries with a ``type`` key
            start_date: Start of the billing window
            end_date: End of the billing window
            config: Billing configuration applied to the combined subtotal
            as_of: Billing moment for milestone and subscription models

        Returns:
            Combined BillingResult over the window

        Raises:
            InvalidPeriodError: If start_date is after end_date
            NoActiveContractError: If a retainer or subscription model lacks
                its contract
        """
        period = to_period(start_date, end_date)
        models = parse_billing_models(billing_models)

        sub_results = [
            self.calculator.calculate_for_model(
                project_id, model, start_date, end_date, config, as_of=as_of
            )
            for model in models
        ]

        labor = sum_money(r.breakdown.labor for r in sub_results)
        expenses = sum_money(r.breakdown.expenses for r in sub_results)

        logger.info(
            f"Mixed billing for {project_id}: {len(sub_results)} models, "
            f"labor={labor}, expenses={expenses}"
        )

        return build_result(
            labor,
            expenses,
            config,
            period,
            time_entries=_merge_by_id(r.time_entries for r in sub_results),
            expenses=_merge_by_id(r.expenses for r in sub_results),
            milestones=_merge_by_id(r.milestones for r in sub_results),
            ready_for_invoicing=_merge_by_id(
                r.ready_for_invoicing for r in sub_results
            ),
            retainer_usage=_merge_by_id(r.retainer_usage for r in sub_results),
        )
