"""Invoice data models."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from billing_engine.models.base import BaseDataModel, coerce_decimal
from billing_engine.models.enums import InvoiceStatus


class InvoiceLineItem(BaseDataModel):
    """A single line on an invoice."""

    description: str = Field(..., min_length=1)
    quantity: Decimal = Decimal("1")
    rate: Decimal
    amount: Decimal

    @field_validator("quantity", "rate", "amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)


class Invoice(BaseDataModel):
    """A persisted invoice document.

    Invoices are created in DRAFT status by the invoice generator. Sending
    and payment happen in external workflows; the engine only moves SENT
    invoices to OVERDUE and adds late fees.

    Attributes:
        id: Storage identifier
        invoice_number: Human-facing unique number (e.g. INV-202405-0001)
        client_id: Billed client
        project_id: Project the invoice belongs to
        contract_id: Contract that produced the invoice, for scheduled runs
        amount: Net amount billed (after discount and tax)
        subtotal: Labor plus expenses before discount and tax
        tax: Tax component
        discount: Discount component
        total: Invoice total, including any late fee
        currency: ISO currency code
        status: Invoice status
        due_date: Payment due date
        created_at: Creation timestamp
        period_start: Start of the billed period
        period_end: End of the billed period
        line_items: Invoice lines
        notes: Free-text notes
        late_fee: Late fee added after the invoice went overdue
    """

    id: str = Field(..., min_length=1)
    invoice_number: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    contract_id: Optional[str] = None
    amount: Decimal
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    total: Decimal
    currency: str = "USD"
    status: InvoiceStatus = InvoiceStatus.DRAFT
    due_date: dt.datetime
    created_at: dt.datetime
    period_start: dt.datetime
    period_end: dt.datetime
    line_items: List[InvoiceLineItem] = Field(default_factory=list)
    notes: str = ""
    late_fee: Decimal = Decimal("0")

    @field_validator(
        "amount", "subtotal", "tax", "discount", "total", "late_fee", mode="before"
    )
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)

    def is_overdue(self, now: dt.datetime) -> bool:
        return self.status == InvoiceStatus.SENT and self.due_date < now
