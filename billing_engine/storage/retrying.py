"""Repository decorator that retries transient storage failures."""

import datetime as dt
import logging
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
from billing_engine.services.retry_handler import RetryHandler
from billing_engine.storage.base import BillingRepository, ConsumedItems

logger = logging.getLogger(__name__)


class RetryingRepository(BillingRepository):
    """Wraps another repository and routes every call through a RetryHandler.

    Only transient failures are retried (see RetryHandler's default
    condition). Business errors such as DuplicateInvoiceError propagate on
    the first attempt.

    Example:
        >>> repo = RetryingRepository(
        ...     InMemoryBillingRepository(), RetryHandler(max_retries=2)
        ... )
    """

    def __init__(
        self,
        inner: BillingRepository,
        retry_handler: Optional[RetryHandler] = None,
    ):
        self.inner = inner
        self.retry_handler = retry_handler or RetryHandler()

    def _call(self, method_name: str, *args, **kwargs):
        method = getattr(self.inner, method_name)
        return self.retry_handler.execute_with_retry(method, *args, **kwargs)

    def find_project(self, project_id: str) -> Optional[Project]:
        return self._call("find_project", project_id)

    def find_active_projects(self) -> List[Project]:
        return self._call("find_active_projects")

    def find_active_contract(
        self, project_id: str, contract_type: ContractType
    ) -> Optional[BillingContract]:
        return self._call("find_active_contract", project_id, contract_type)

    def find_active_contracts(
        self, project_id: str, auto_invoice_only: bool = False
    ) -> List[BillingContract]:
        return self._call(
            "find_active_contracts", project_id, auto_invoice_only=auto_invoice_only
        )

    def find_time_entries(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        uninvoiced_only: bool = False,
    ) -> List[TimeEntry]:
        return self._call(
            "find_time_entries",
            project_id,
            period=period,
            billable=billable,
            statuses=statuses,
            uninvoiced_only=uninvoiced_only,
        )

    def find_expenses(
        self,
        project_id: str,
        period: Optional[DateRange] = None,
        billable: Optional[bool] = None,
        category: Optional[ExpenseCategory] = None,
        uninvoiced_only: bool = False,
    ) -> List[Expense]:
        return self._call(
            "find_expenses",
            project_id,
            period=period,
            billable=billable,
            category=category,
            uninvoiced_only=uninvoiced_only,
        )

    def find_completed_milestones(self, project_id: str) -> List[ProjectMilestone]:
        return self._call("find_completed_milestones", project_id)

    def find_existing_invoice(
        self,
        project_id: str,
        period: DateRange,
        contract_id: Optional[str] = None,
    ) -> Optional[Invoice]:
        return self._call(
            "find_existing_invoice", project_id, period, contract_id=contract_id
        )

    def find_invoices(
        self,
        project_id: Optional[str] = None,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
    ) -> List[Invoice]:
        return self._call("find_invoices", project_id=project_id, statuses=statuses)

    def next_invoice_number(self, prefix: str, issued_at: dt.datetime) -> str:
        return self._call("next_invoice_number", prefix, issued_at)

    def create_invoice(
        self, invoice: Invoice, consumed: Optional[ConsumedItems] = None
    ) -> Invoice:
        return self._call("create_invoice", invoice, consumed)

    def update_invoice(self, invoice: Invoice) -> Invoice:
        return self._call("update_invoice", invoice)
