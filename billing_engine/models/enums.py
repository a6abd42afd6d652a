"""Status and type enumerations shared by the billing models."""

from enum import Enum


class TimeEntryStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    INVOICED = "INVOICED"


# Statuses a time entry can be in while still waiting to be billed.
UNINVOICED_TIME_ENTRY_STATUSES = frozenset(
    {TimeEntryStatus.DRAFT, TimeEntryStatus.PENDING, TimeEntryStatus.APPROVED}
)


class ExpenseCategory(str, Enum):
    TRAVEL = "TRAVEL"
    MEALS = "MEALS"
    OFFICE = "OFFICE"
    SOFTWARE = "SOFTWARE"
    HARDWARE = "HARDWARE"
    SERVICES = "SERVICES"
    OTHER = "OTHER"


class MilestoneStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ContractType(str, Enum):
    HOURLY = "HOURLY"
    FIXED_FEE = "FIXED_FEE"
    RETAINER = "RETAINER"
    SUBSCRIPTION = "SUBSCRIPTION"
    MILESTONE = "MILESTONE"
    MIXED = "MIXED"


class BillingCycle(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    ANNUALLY = "ANNUALLY"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# Invoices whose totals count as realized revenue.
REVENUE_INVOICE_STATUSES = frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID})


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
