"""Per-run billing configuration.

A BillingConfiguration carries the settings that shape a single billing
calculation or invoice run: tax and discount percentages, currency, payment
terms and billing cycle. It is resolved from the application settings and
optionally overridden by the caller.
"""

import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field, field_validator

from billing_engine.config.settings import BillingSystemConfig
from billing_engine.models.base import BaseDataModel, coerce_decimal
from billing_engine.models.enums import BillingCycle


class BillingConfiguration(BaseDataModel):
    """Settings for one billing run.

    Attributes:
        auto_invoice: Whether the run was triggered by the scheduler
        billing_cycle: Cadence the run belongs to
        payment_terms: Days until an invoice falls due
        tax_rate: Tax percentage (0-100) applied after discount
        discount_rate: Discount percentage (0-100) applied to the subtotal
        currency: ISO currency code

    Example:
        >>> config = BillingConfiguration(tax_rate=10, currency="usd")
        >>> config.currency
        'USD'
        >>> config.tax_rate
        Decimal('10')
    """

    auto_invoice: bool = False
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    payment_terms: int = Field(30, ge=0, description="Days until due")
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    discount_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    currency: str = "USD"

    @field_validator("tax_rate", "discount_rate", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        """Convert percentages to Decimal; a missing discount means none."""
        if v is None:
            return Decimal("0")
        return coerce_decimal(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        code = v.strip().upper()
        if not re.fullmatch(r"[A-Z]{3}", code):
            raise ValueError(f"Currency must be a three-letter ISO code, got {v!r}")
        return code


def resolve_billing_configuration(
    settings: BillingSystemConfig,
    billing_cycle: Optional[BillingCycle] = None,
    **overrides: Any,
) -> BillingConfiguration:
    """Build a BillingConfiguration from application settings.

    Args:
        settings: Application settings providing the defaults
        billing_cycle: Cycle of the contract being billed (default MONTHLY)
        **overrides: Explicit field values that win over the defaults

    Returns:
        Validated BillingConfiguration
    """
    values = {
        "auto_invoice": False,
        "billing_cycle": billing_cycle or BillingCycle.MONTHLY,
        "payment_terms": settings.payment_terms_days,
        "tax_rate": settings.default_tax_rate,
        "discount_rate": settings.default_discount_rate,
        "currency": settings.default_currency,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return BillingConfiguration(**values)
