"""Thread-safe in-memory implementation of BillingRepository."""

import datetime as dt
import logging
import re
import threading
from typing import Dict, Iterable, List, Optional

from billing_engine.exceptions import (
    DuplicateInvoiceError,
    InvoiceNumberConflictError,
    RecordAlreadyInvoicedError,
    StorageError,
)
from billing_engine.models import (
    BillingContract,
    ContractType,
    DateRange,
    Expense,
    ExpenseCategory,
    Invoice,
    InvoiceStatus,
    MilestoneStatus,
    Project,
    ProjectMilestone,
    ProjectStatus,
    TimeEntry,
    TimeEntryStatus,
)
from billing_engine.storage.base import BillingRepository, ConsumedItems

logger = logging.getLogger(__name__)

_SEQUENCE_PATTERN = re.compile(r"^(?P<key>.+-\d{6})-(?P<seq>\d+)$")


class InMemoryBillingRepository(BillingRepository):
    """Keeps the whole ledger in dictionaries guarded by a single lock.

    Reads return copies so callers cannot change stored state behind the
    repository's back. ``create_invoice`` performs the duplicate check, the
    invoice insert and the consumed-record updates while holding the lock,
    which makes check-then-create safe for concurrent scheduler workers.

    Example:
        >>> repo = InMemoryBillingRepository()
        >>> repo.add_project(Project(id="P1", client_id="C1"))
        >>> [p.id for p in repo.find_active_projects()]
        ['P1']
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._projects: Dict[str, Project] = {}
        self._contracts: Dict[str, BillingContract] = {}
        self._time_entries: Dict[str, TimeEntry] = {}
        self._expenses: Dict[str, Expense] = {}
        self._milestones: Dict[str, ProjectMilestone] = {}
        self._invoices: Dict[str, Invoice] = {}
        self._sequences: Dict[str, int] = {}

    # Seeding

    def add_project(self, project: Project) -> None:
        with self._lock:
            self._projects[project.id] = project.model_copy()

    def add_contract(self, contract: BillingContract) -> None:
        with self._lock:
            self._contracts[contract.id] = contract.model_copy()

    def add_time_entry(self, entry: TimeEntry) -> None:
        with self._lock:
            self._time_entries[entry.id] = entry.model_copy()

    def add_expense(self, expense: Expense) -> None:
        with self._lock:
            self._expenses[expense.id] = expense.model_copy()

    def add_milestone(self, milestone: ProjectMilestone) -> None:
        with self._lock:
            self._milestones[milestone.id] = milestone.model_copy()

    def add_invoice(self, invoice: Invoice) -> None:
        """Load an existing invoice without idempotency checks."""
        with self._lock:
            self._invoices[invoice.id] = invoice.model_copy(deep=True)

    # Projects and contracts

    def find_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            project = self._projects.get(project_id)
            return project.model_copy() if project else None

    def find_active_projects(self) -> List[Project]:
        with self._lock:
            return [
                p.model_copy()
                for p in self._projects.values()
                if p.status == ProjectStatus.ACTIVE
            ]

    def find_active_contract(
        self, project_id: str, contract_type: ContractType
    ) -> Optional[BillingContract]:
        for contract in self.find_active_contracts(project_id):
            if contract.contract_type == contract_type:
                return contract
        return None

    def find_active_contracts(
        self, project_id: str, auto_invoice_only: bool = False
    ) -> List[BillingContract]:
        with self._lock:
            return [
                c.model_copy()
                for c in self._contracts.values()
                if c.project_id == project_id
                and c.is_active
                and (c.auto_invoice or not auto_invoice_only)
            ]

    # Ledger

    def find_time_entries(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        uninvoiced_only: bool = False,
    ) -> List[TimeEntry]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            entries = [
                e
                for e in self._time_entries.values()
                if e.project_id == project_id
                and (period is None or period.contains(e.date))
                and (billable is None or e.billable == billable)
                and (wanted is None or e.status in wanted)
                and not (uninvoiced_only and e.is_invoiced)
            ]
            return [e.model_copy() for e in sorted(entries, key=lambda e: e.date)]

    def find_expenses(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        category: Optional[ExpenseCategory] = None,
        uninvoiced_only: bool = False,
    ) -> List[Expense]:
        with self._lock:
            expenses = [
                x
                for x in self._expenses.values()
                if x.project_id == project_id
                and (period is None or period.contains(x.date))
                and (billable is None or x.billable == billable)
                and (category is None or x.category == category)
                and not (uninvoiced_only and x.is_invoiced)
            ]
            return [x.model_copy() for x in sorted(expenses, key=lambda x: x.date)]

    def find_completed_milestones(self, project_id: str) -> List[ProjectMilestone]:
        with self._lock:
            return [
                m.model_copy()
                for m in self._milestones.values()
                if m.project_id == project_id and m.status == MilestoneStatus.COMPLETED
            ]

    # Invoices

    def find_existing_invoice(
        self,
        project_id: str,
        period: DateRange,
        contract_id: Optional[str] = None,
    ) -> Optional[Invoice]:
        with self._lock:
            match = self._find_invoice_in_period(project_id, period, contract_id)
            return match.model_copy(deep=True) if match else None

    def _find_invoice_in_period(
        self, project_id: str, period: DateRange, contract_id: Optional[str]
    ) -> Optional[Invoice]:
        for invoice in self._invoices.values():
            if invoice.project_id != project_id:
                continue
            if invoice.status == InvoiceStatus.CANCELLED:
                continue
            if contract_id is not None and invoice.contract_id != contract_id:
                continue
            if period.contains(invoice.created_at):
                return invoice
        return None

    def find_invoices(
        self,
        project_id: Optional[str] = None,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
    ) -> List[Invoice]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            invoices = [
                i
                for i in self._invoices.values()
                if (project_id is None or i.project_id == project_id)
                and (wanted is None or i.status in wanted)
            ]
            invoices.sort(key=lambda i: (i.created_at, i.invoice_number))
            return [i.model_copy(deep=True) for i in invoices]

    def next_invoice_number(self, prefix: str, issued_at: dt.datetime) -> str:
        key = f"{prefix}-{issued_at:%Y%m}"
        with self._lock:
            if key not in self._sequences:
                self._sequences[key] = self._highest_sequence(key)
            self._sequences[key] += 1
            return f"{key}-{self._sequences[key]:04d}"

    def _highest_sequence(self, key: str) -> int:
        highest = 0
        for invoice in self._invoices.values():
            match = _SEQUENCE_PATTERN.match(invoice.invoice_number)
            if match and match.group("key") == key:
                highest = max(highest, int(match.group("seq")))
        return highest

    def create_invoice(
        self, invoice: Invoice, consumed: Optional[ConsumedItems] = None
    ) -> Invoice:
        consumed = consumed or ConsumedItems()
        with self._lock:
            if invoice.id in self._invoices or any(
                i.invoice_number == invoice.invoice_number
                for i in self._invoices.values()
            ):
                raise InvoiceNumberConflictError(
                    f"Invoice {invoice.invoice_number} ({invoice.id}) already exists"
                )

            if invoice.contract_id is not None:
                period = DateRange(start=invoice.period_start, end=invoice.period_end)
                existing = self._find_invoice_in_period(
                    invoice.project_id, period, invoice.contract_id
                )
                if existing is not None:
                    raise DuplicateInvoiceError(
                        invoice.project_id,
                        invoice.contract_id,
                        existing.invoice_number,
                    )

            self._check_consumed_exist(consumed)
            self._check_consumed_unlinked(consumed)

            self._invoices[invoice.id] = invoice.model_copy(deep=True)
            self._mark_consumed(invoice.id, consumed)

            logger.debug(
                f"Stored invoice {invoice.invoice_number} consuming "
                f"{len(consumed.time_entry_ids)} time entries, "
                f"{len(consumed.expense_ids)} expenses, "
                f"{len(consumed.milestone_ids)} milestones"
            )
            return invoice.model_copy(deep=True)

    def _check_consumed_exist(self, consumed: ConsumedItems) -> None:
        missing = (
            [i for i in consumed.time_entry_ids if i not in self._time_entries]
            + [i for i in consumed.expense_ids if i not in self._expenses]
            + [i for i in consumed.milestone_ids if i not in self._milestones]
        )
        if missing:
            raise StorageError(f"Cannot invoice unknown ledger records: {missing}")

    def _check_consumed_unlinked(self, consumed: ConsumedItems) -> None:
        records = (
            [self._time_entries[i] for i in consumed.time_entry_ids]
            + [self._expenses[i] for i in consumed.expense_ids]
            + [self._milestones[i] for i in consumed.milestone_ids]
        )
        links = {r.id: r.invoice_id for r in records if r.is_invoiced}
        if links:
            raise RecordAlreadyInvoicedError(links)

    def _mark_consumed(self, invoice_id: str, consumed: ConsumedItems) -> None:
        for entry_id in consumed.time_entry_ids:
            entry = self._time_entries[entry_id]
            entry.invoice_id = invoice_id
            entry.status = TimeEntryStatus.INVOICED
        for expense_id in consumed.expense_ids:
            self._expenses[expense_id].invoice_id = invoice_id
        for milestone_id in consumed.milestone_ids:
            self._milestones[milestone_id].invoice_id = invoice_id

    def update_invoice(self, invoice: Invoice) -> Invoice:
        with self._lock:
            if invoice.id not in self._invoices:
                raise StorageError(f"Invoice {invoice.id} does not exist")
            self._invoices[invoice.id] = invoice.model_copy(deep=True)
            return invoice.model_copy(deep=True)

    # Bulk access used by persistence backends

    def snapshot(self) -> Dict[str, list]:
        """Return copies of every stored record, keyed by ledger name."""
        with self._lock:
            return {
                "projects": [p.model_copy() for p in self._projects.values()],
                "contracts": [c.model_copy() for c in self._contracts.values()],
                "time_entries": [e.model_copy() for e in self._time_entries.values()],
                "expenses": [x.model_copy() for x in self._expenses.values()],
                "milestones": [m.model_copy() for m in self._milestones.values()],
                "invoices": [i.model_copy(deep=True) for i in self._invoices.values()],
            }
