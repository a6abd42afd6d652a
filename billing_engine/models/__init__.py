"""Data models for the billing engine.

This package contains Pydantic models for all business entities:
- BaseDataModel: Base class with common configuration
- TimeEntry, Expense, ProjectMilestone, RetainerUsage: ledger records
- Project, BillingContract, MilestonePayment: billing arrangements
- Invoice, InvoiceLineItem: invoice documents
- DateRange: billing windows
"""

from billing_engine.models.base import BaseDataModel, coerce_decimal
from billing_engine.models.enums import (
    REVENUE_INVOICE_STATUSES,
    UNINVOICED_TIME_ENTRY_STATUSES,
    BillingCycle,
    ContractType,
    ExpenseCategory,
    InvoiceStatus,
    MilestoneStatus,
    ProjectStatus,
    TimeEntryStatus,
)
from billing_engine.models.invoice import Invoice, InvoiceLineItem
from billing_engine.models.ledger import (
    Expense,
    ProjectMilestone,
    RetainerUsage,
    TimeEntry,
)
from billing_engine.models.period import DateRange
from billing_engine.models.project import BillingContract, MilestonePayment, Project

__all__ = [
    "BaseDataModel",
    "coerce_decimal",
    # enums
    "BillingCycle",
    "ContractType",
    "ExpenseCategory",
    "InvoiceStatus",
    "MilestoneStatus",
    "ProjectStatus",
    "TimeEntryStatus",
    "REVENUE_INVOICE_STATUSES",
    "UNINVOICED_TIME_ENTRY_STATUSES",
    # records
    "BillingContract",
    "DateRange",
    "Expense",
    "Invoice",
    "InvoiceLineItem",
    "MilestonePayment",
    "Project",
    "ProjectMilestone",
    "RetainerUsage",
    "TimeEntry",
]
