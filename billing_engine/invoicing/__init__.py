"""Invoice generation and invoice maintenance."""

from billing_engine.invoicing.generator import InvoiceGenerator

__all__ = [
    "InvoiceGenerator",
]
