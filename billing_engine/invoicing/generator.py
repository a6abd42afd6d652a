"""Invoice generator.

Turns a BillingResult into a stored Invoice. Storing the invoice and linking
every ledger record it bills happen in a single repository call, so a
record can never be billed by two invoices.
"""

import datetime as dt
import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from billing_engine.calculators.billing_result import BillingResult
from billing_engine.calculators.money import ZERO, percentage_of, to_decimal
from billing_engine.config.billing import BillingConfiguration
from billing_engine.models import (
    DateRange,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
)
from billing_engine.storage.base import BillingRepository

logger = logging.getLogger(__name__)

DEFAULT_LATE_FEE_PERCENTAGE = Decimal("1.5")


class InvoiceGenerator:
    """Creates invoices from billing results and maintains overdue invoices.

    Args:
        repository: Store that allocates invoice numbers and persists invoices
        number_prefix: Prefix of generated invoice numbers
        late_fee_percentage: Default percentage used by ``apply_late_fees``

    Example:
        >>> generator = InvoiceGenerator(repository)
        >>> invoice = generator.generate(result, "P1", "C1", config)
        >>> invoice.invoice_number
        'INV-202405-0001'
    """

    def __init__(
        self,
        repository: BillingRepository,
        number_prefix: str = "INV",
        late_fee_percentage: Decimal = DEFAULT_LATE_FEE_PERCENTAGE,
    ):
        self.repository = repository
        self.number_prefix = number_prefix
        self.late_fee_percentage = to_decimal(late_fee_percentage)

    def generate(
        self,
        result: BillingResult,
        project_id: str,
        client_id: str,
        config: BillingConfiguration,
        contract_id: Optional[str] = None,
        billing_period: Optional[DateRange] = None,
        now: Optional[dt.datetime] = None,
    ) -> Invoice:
        """Persist a DRAFT invoice for ``result`` and return it.

        Args:
            result: Calculation to invoice
            project_id: Billed project
            client_id: Billed client
            config: Configuration providing the payment terms
            contract_id: Contract the invoice belongs to (scheduled runs)
            billing_period: Window recorded on the invoice; defaults to the
                result's own period
            now: Creation time (default now)

        Returns:
            The stored invoice

        Raises:
            DuplicateInvoiceError: If the contract is already invoiced for
                the period
            RecordAlreadyInvoicedError: If a billed record is already on
                another invoice
            StorageError: If the store rejects the invoice
        """
        now = now or dt.datetime.now()
        period = billing_period or result.period
        breakdown = result.breakdown

        invoice = Invoice(
            id=str(uuid.uuid4()),
            invoice_number=self.repository.next_invoice_number(self.number_prefix, now),
            client_id=client_id,
            project_id=project_id,
            contract_id=contract_id,
            amount=result.amount,
            subtotal=breakdown.subtotal,
            tax=breakdown.tax,
            discount=breakdown.discount,
            total=breakdown.total,
            currency=result.currency,
            status=InvoiceStatus.DRAFT,
            due_date=now + dt.timedelta(days=config.payment_terms),
            created_at=now,
            period_start=period.start,
            period_end=period.end,
            line_items=self._build_line_items(result),
            notes=f"Invoice for services rendered during {period.label()}",
        )

        stored = self.repository.create_invoice(invoice, result.consumed_items())

        for usage in result.retainer_usage:
            usage.invoiced = True

        logger.info(
            f"Generated invoice {stored.invoice_number} for project {project_id}: "
            f"{stored.total} {stored.currency} due {stored.due_date:%Y-%m-%d}"
        )
        return stored

    @staticmethod
    def _build_line_items(result: BillingResult) -> List[InvoiceLineItem]:
        breakdown = result.breakdown
        items = [
            InvoiceLineItem(
                description="Professional Services",
                quantity=1,
                rate=breakdown.labor,
                amount=breakdown.labor,
            )
        ]
        if breakdown.expenses > 0:
            items.append(
                InvoiceLineItem(
                    description="Project Expenses",
                    quantity=1,
                    rate=breakdown.expenses,
                    amount=breakdown.expenses,
                )
            )
        return items

    def mark_overdue_invoices(self, now: Optional[dt.datetime] = None) -> List[Invoice]:
        """Move SENT invoices whose due date has passed to OVERDUE.

        Returns:
            The invoices that changed status
        """
        now = now or dt.datetime.now()
        updated = []
        for invoice in self.repository.find_invoices(statuses=[InvoiceStatus.SENT]):
            if not invoice.is_overdue(now):
                continue
            invoice.status = InvoiceStatus.OVERDUE
            updated.append(self.repository.update_invoice(invoice))

        if updated:
            logger.info(f"Marked {len(updated)} invoices overdue")
        return updated

    def apply_late_fees(self, percentage: Optional[Decimal] = None) -> List[Invoice]:
        """Add a one-time late fee to OVERDUE invoices that have none yet.

        The fee is ``percentage`` percent of the invoice total and is added
        to the total.

        Returns:
            The invoices that received a fee
        """
        rate = self.late_fee_percentage if percentage is None else to_decimal(percentage)
        updated = []
        for invoice in self.repository.find_invoices(statuses=[InvoiceStatus.OVERDUE]):
            if invoice.late_fee > ZERO:
                continue
            fee = percentage_of(invoice.total, rate)
            if fee <= ZERO:
                continue
            invoice.late_fee = fee
            invoice.total = invoice.total + fee
            updated.append(self.repository.update_invoice(invoice))
            logger.info(
                f"Applied late fee {fee} to invoice {invoice.invoice_number}"
            )
        return updated
