"""Ledger data models: time entries, expenses, milestones and retainer usage.

These records are created elsewhere (time tracking, expense capture, project
planning). The billing engine only reads them, except for the ``invoice_id``
link which is set when an invoice consumes the record.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from billing_engine.models.base import BaseDataModel, coerce_decimal
from billing_engine.models.enums import (
    UNINVOICED_TIME_ENTRY_STATUSES,
    ExpenseCategory,
    MilestoneStatus,
    TimeEntryStatus,
)


class TimeEntry(BaseDataModel):
    """A block of tracked time on a project.

    Attributes:
        id: Unique entry identifier
        project_id: Project the time was tracked against
        date: Calendar day of the work
        hours: Hours worked
        rate: Hourly rate applied to the entry
        amount: Billable value (defaults to hours × rate)
        billable: Whether the client is charged for the entry
        status: Approval/invoicing status
        invoice_id: Invoice that consumed the entry, once invoiced
        user_id: Person who tracked the time
        description: Free-text description

    Example:
        >>> entry = TimeEntry(
        ...     id="te-1", project_id="P1", date=dt.date(2024, 5, 2),
        ...     hours="4", rate="100",
        ... )
        >>> entry.amount
        Decimal('400')
    """

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    date: dt.date
    hours: Decimal = Field(..., ge=0)
    rate: Decimal = Field(Decimal("0"), ge=0)
    amount: Optional[Decimal] = Field(None, ge=0)
    billable: bool = True
    status: TimeEntryStatus = TimeEntryStatus.DRAFT
    invoice_id: Optional[str] = None
    user_id: Optional[str] = None
    description: str = ""

    @field_validator("hours", "rate", "amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)

    @model_validator(mode="after")
    def default_amount(self) -> "TimeEntry":
        """Derive the amount from hours and rate when it was not supplied."""
        if self.amount is None:
            # Bypass validate_assignment to avoid re-running this validator.
            object.__setattr__(self, "amount", self.hours * self.rate)
        return self

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_id is not None or self.status == TimeEntryStatus.INVOICED

    @property
    def is_billing_eligible(self) -> bool:
        """True for billable, un-invoiced entries in an open status."""
        return (
            self.billable
            and not self.is_invoiced
            and self.status in UNINVOICED_TIME_ENTRY_STATUSES
        )


class Expense(BaseDataModel):
    """A cost incurred on a project.

    Expenses in the SERVICES category double as retainer usage records.
    """

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    date: dt.date
    amount: Decimal = Field(..., ge=0)
    category: ExpenseCategory = ExpenseCategory.OTHER
    billable: bool = True
    description: str = ""
    invoice_id: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_id is not None


class ProjectMilestone(BaseDataModel):
    """A project milestone. Only COMPLETED milestones can be billed."""

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    name: str = ""
    status: MilestoneStatus = MilestoneStatus.PENDING
    completed_date: Optional[dt.date] = None
    invoice_id: Optional[str] = None

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_id is not None


class RetainerUsage(BaseDataModel):
    """Consumption recorded against a retainer balance.

    This is a view over SERVICES expenses; ``invoiced`` stays False until an
    invoice consumes the underlying expense.
    """

    id: str
    project_id: str
    amount: Decimal
    description: str = ""
    date: dt.date
    invoiced: bool = False

    @classmethod
    def from_expense(cls, expense: Expense) -> "RetainerUsage":
        return cls(
            id=expense.id,
            project_id=expense.project_id,
            amount=expense.amount,
            description=expense.description,
            date=expense.date,
            invoiced=False,
        )
