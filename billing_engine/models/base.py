"""Base model for all ledger and invoice models in the billing engine.

This module provides a base Pydantic model with the shared configuration and
a helper for coercing monetary and hour values to Decimal.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict


def coerce_decimal(value: Any) -> Any:
    """Convert a numeric value to Decimal without binary float drift.

    Floats are converted through their string representation so that
    ``0.1`` becomes ``Decimal("0.1")`` rather than the nearest binary value.
    ``None`` passes through untouched so optional fields keep working.

    Args:
        value: The value to convert

    Returns:
        The value as a Decimal, or None

    Raises:
        ValueError: If the value cannot be converted to Decimal
    """
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value} to Decimal")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Cannot convert {value!r} to Decimal: {e}")


class BaseDataModel(BaseModel):
    """Base class for all billing data models.

    Provides common configuration for:
    - Validation with lax type coercion (CSV strings, ints, floats)
    - Validation on assignment, so status flips are checked too
    - Rejection of unknown fields

    Example:
        >>> class Fee(BaseDataModel):
        ...     label: str
        ...     amount: Decimal
        >>> Fee(label="Setup", amount="150.00").amount
        Decimal('150.00')
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        strict=False,
        extra="forbid",
        frozen=False,
        use_enum_values=False,
    )
