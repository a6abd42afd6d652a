"""Billing model variants.

A billing model describes one arrangement to bill under. Each variant
carries only the parameters its calculator needs, and the variants form a
union discriminated on ``type``. Raw dictionaries (from an API payload or a
stored configuration) are validated with ``parse_billing_models``, which
skips types this version does not know so that newer configurations do
not break older deployments.
"""

import logging
from decimal import Decimal
from typing import Annotated, Any, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import Field, TypeAdapter, field_validator

from billing_engine.models import (
    BaseDataModel,
    BillingContract,
    BillingCycle,
    ContractType,
    MilestonePayment,
    coerce_decimal,
)

logger = logging.getLogger(__name__)


class HourlyModel(BaseDataModel):
    """Bill tracked time and billable expenses over a window.

    ``hourly_rate`` prices entries tracked without a rate of their own.
    """

    type: Literal["HOURLY"] = "HOURLY"
    hourly_rate: Optional[Decimal] = Field(None, ge=0)

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)


class FixedFeeModel(BaseDataModel):
    """Bill declared payments for completed milestones."""

    type: Literal["FIXED_FEE", "MILESTONE"] = "FIXED_FEE"
    milestone_payments: List[MilestonePayment] = Field(default_factory=list)


class RetainerModel(BaseDataModel):
    """Bill service consumption above the project's retainer."""

    type: Literal["RETAINER"] = "RETAINER"


class SubscriptionModel(BaseDataModel):
    """Bill the recurring charge of the project's subscription contract."""

    type: Literal["SUBSCRIPTION"] = "SUBSCRIPTION"
    billing_cycle: Optional[BillingCycle] = None


BillingModel = Union[HourlyModel, FixedFeeModel, RetainerModel, SubscriptionModel]

_billing_model_adapter: TypeAdapter = TypeAdapter(
    Annotated[BillingModel, Field(discriminator="type")]
)

KNOWN_MODEL_TYPES = frozenset({"HOURLY", "FIXED_FEE", "MILESTONE", "RETAINER", "SUBSCRIPTION"})


def parse_billing_model(raw: Union[Mapping[str, Any], BillingModel]) -> Optional[BillingModel]:
    """Validate one billing model; return None for an unknown ``type``.

    Raises:
        pydantic.ValidationError: If a known type carries invalid parameters
    """
    if isinstance(raw, (HourlyModel, FixedFeeModel, RetainerModel, SubscriptionModel)):
        return raw

    model_type = str(raw.get("type", "")).upper()
    if model_type not in KNOWN_MODEL_TYPES:
        logger.debug(f"Skipping unsupported billing model type {raw.get('type')!r}")
        return None

    return _billing_model_adapter.validate_python({**raw, "type": model_type})


def parse_billing_models(
    raw_models: Iterable[Union[Mapping[str, Any], BillingModel]],
) -> List[BillingModel]:
    """Validate a list of billing models, dropping unknown types."""
    models = []
    for raw in raw_models:
        model = parse_billing_model(raw)
        if model is not None:
            models.append(model)
    return models


def billing_model_for_contract(contract: BillingContract) -> Optional[BillingModel]:
    """Map a stored contract to the billing model its calculator expects.

    MIXED contracts carry no component list, so they have no single model
    and return None, as do types this version does not handle.
    """
    if contract.contract_type == ContractType.HOURLY:
        return HourlyModel(hourly_rate=contract.hourly_rate)
    if contract.contract_type in (ContractType.FIXED_FEE, ContractType.MILESTONE):
        return FixedFeeModel(type=contract.contract_type.value)
    if contract.contract_type == ContractType.RETAINER:
        return RetainerModel()
    if contract.contract_type == ContractType.SUBSCRIPTION:
        return SubscriptionModel(billing_cycle=contract.billing_cycle)
    return None
