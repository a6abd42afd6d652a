"""Billing period model."""

import datetime as dt
from typing import Union

from pydantic import Field, model_validator

from billing_engine.models.base import BaseDataModel


class DateRange(BaseDataModel):
    """An inclusive window of time used to select ledger data.

    Ledger rows carry calendar dates while billing periods carry timestamps,
    so ``contains`` compares dates against the calendar days of the window
    and datetimes against the exact bounds.

    Example:
        >>> period = DateRange(
        ...     start=dt.datetime(2024, 5, 1),
        ...     end=dt.datetime(2024, 5, 20, 12, 0),
        ... )
        >>> period.contains(dt.date(2024, 5, 20))
        True
    """

    start: dt.datetime = Field(..., description="Inclusive start of the window")
    end: dt.datetime = Field(..., description="Inclusive end of the window")

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        """Ensure the window does not end before it starts."""
        if self.start > self.end:
            raise ValueError(
                f"start ({self.start.isoformat()}) must not be after "
                f"end ({self.end.isoformat()})"
            )
        return self

    @classmethod
    def at(cls, moment: dt.datetime) -> "DateRange":
        """Build a zero-length window for point-in-time charges."""
        return cls(start=moment, end=moment)

    def contains(self, value: Union[dt.date, dt.datetime]) -> bool:
        if isinstance(value, dt.datetime):
            return self.start <= value <= self.end
        return self.start.date() <= value <= self.end.date()

    def label(self) -> str:
        return f"{self.start:%Y-%m-%d} to {self.end:%Y-%m-%d}"
