"""Calculator modules for the billing engine."""

from billing_engine.calculators.billing_calculator import BillingCalculator, to_period
from billing_engine.calculators.billing_models import (
    KNOWN_MODEL_TYPES,
    BillingModel,
    FixedFeeModel,
    HourlyModel,
    RetainerModel,
    SubscriptionModel,
    billing_model_for_contract,
    parse_billing_model,
    parse_billing_models,
)
from billing_engine.calculators.billing_result import (
    BillingBreakdown,
    BillingResult,
    build_result,
    compute_breakdown,
    empty_breakdown,
)
from billing_engine.calculators.money import (
    percentage_of,
    round_money,
    sum_money,
    to_decimal,
)

__all__ = [
    # billing_calculator
    "BillingCalculator",
    "to_period",
    # billing_models
    "KNOWN_MODEL_TYPES",
    "BillingModel",
    "FixedFeeModel",
    "HourlyModel",
    "RetainerModel",
    "SubscriptionModel",
    "billing_model_for_contract",
    "parse_billing_model",
    "parse_billing_models",
    # billing_result
    "BillingBreakdown",
    "BillingResult",
    "build_result",
    "compute_breakdown",
    "empty_breakdown",
    # money
    "percentage_of",
    "round_money",
    "sum_money",
    "to_decimal",
]
