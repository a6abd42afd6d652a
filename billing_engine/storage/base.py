"""Data-access interface consumed by the billing engine.

The engine never talks to a database directly. Calculators, the invoice
generator, the scheduler and the profitability analyzer all receive a
BillingRepository and use only the methods declared here.
"""

import datetime as dt
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from billing_engine.models import (
    BillingContract,
    ContractType,
    DateRange,
    Expense,
    ExpenseCategory,
    Invoice,
    InvoiceStatus,
    Project,
    ProjectMilestone,
    TimeEntry,
    TimeEntryStatus,
)


@dataclass
class ConsumedItems:
    """Ledger records an invoice consumes.

    ``create_invoice`` links every listed record to the new invoice in the
    same atomic step that stores the invoice, so the next billing run cannot
    pick them up again.
    """

    time_entry_ids: List[str] = field(default_factory=list)
    expense_ids: List[str] = field(default_factory=list)
    milestone_ids: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.time_entry_ids or self.expense_ids or self.milestone_ids)

    def merge(self, other: "ConsumedItems") -> "ConsumedItems":
        return ConsumedItems(
            time_entry_ids=_unique(self.time_entry_ids + other.time_entry_ids),
            expense_ids=_unique(self.expense_ids + other.expense_ids),
            milestone_ids=_unique(self.milestone_ids + other.milestone_ids),
        )


def _unique(ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(ids))


class BillingRepository(ABC):
    """Read and write surface of the persistent store."""

    # Projects and contracts

    @abstractmethod
    def find_project(self, project_id: str) -> Optional[Project]:
        """Return the project with ``project_id``, or None."""

    @abstractmethod
    def find_active_projects(self) -> List[Project]:
        """Return all projects with status ACTIVE."""

    @abstractmethod
    def find_active_contract(
        self, project_id: str, contract_type: ContractType
    ) -> Optional[BillingContract]:
        """Return the first active contract of ``contract_type`` for the project."""

    @abstractmethod
    def find_active_contracts(
        self, project_id: str, auto_invoice_only: bool = False
    ) -> List[BillingContract]:
        """Return active contracts for the project, optionally only auto-invoiced ones."""

    # Ledger

    @abstractmethod
    def find_time_entries(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        uninvoiced_only: bool = False,
    ) -> List[TimeEntry]:
        """Return time entries for the project matching every given filter."""

    @abstractmethod
    def find_expenses(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        category: Optional[ExpenseCategory] = None,
        uninvoiced_only: bool = False,
    ) -> List[Expense]:
        """Return expenses for the project matching every given filter."""

    @abstractmethod
    def find_completed_milestones(self, project_id: str) -> List[ProjectMilestone]:
        """Return the project's milestones with status COMPLETED."""

    # Invoices

    @abstractmethod
    def find_existing_invoice(
        self,
        project_id: str,
        period: DateRange,
        contract_id: Optional[str] = None,
    ) -> Optional[Invoice]:
        """Return a non-cancelled invoice created within ``period``.

        When ``contract_id`` is given only invoices produced for that
        contract count.
        """

    @abstractmethod
    def find_invoices(
        self,
        project_id: Optional[str] = None,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
    ) -> List[Invoice]:
        """Return invoices, optionally filtered by project and status."""

    @abstractmethod
    def next_invoice_number(self, prefix: str, issued_at: dt.datetime) -> str:
        """Allocate the next number of the monthly sequence ``PREFIX-YYYYMM-NNNN``."""

    @abstractmethod
    def create_invoice(
        self, invoice: Invoice, consumed: Optional[ConsumedItems] = None
    ) -> Invoice:
        """Persist ``invoice`` and mark ``consumed`` records as invoiced, atomically.

        Raises:
            InvoiceNumberConflictError: If the invoice number is taken
            DuplicateInvoiceError: If the contract already has an invoice
                created within the invoice's billing period
            RecordAlreadyInvoicedError: If a consumed record is already linked
                to an invoice
            StorageError: If a consumed record does not exist
        """

    @abstractmethod
    def update_invoice(self, invoice: Invoice) -> Invoice:
        """Replace the stored invoice with the same id."""
