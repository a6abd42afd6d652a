"""Exception hierarchy for the billing engine.

Business errors (subclasses of BillingError) describe conditions the caller
must fix and are never retried. Storage errors describe failures of the
data-access layer; only TransientStorageError is eligible for retry.
"""

from typing import Dict, Optional


class BillingError(Exception):
    """Base class for business-rule failures raised by the engine."""

    pass


class NoActiveContractError(BillingError):
    """Raised when a calculator requires an active contract the project lacks."""

    def __init__(self, project_id: str, contract_type: str):
        self.project_id = project_id
        self.contract_type = contract_type
        super().__init__(
            f"No active {contract_type} contract found for project {project_id}"
        )


class InvalidPeriodError(BillingError, ValueError):
    """Raised when a billing window ends before it starts."""

    pass


class ProjectNotFoundError(BillingError):
    """Raised when a project id does not resolve to a known project."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class DuplicateInvoiceError(BillingError):
    """Raised when an invoice already exists for a project/contract period."""

    def __init__(
        self,
        project_id: str,
        contract_id: Optional[str],
        existing_invoice_number: str,
    ):
        self.project_id = project_id
        self.contract_id = contract_id
        self.existing_invoice_number = existing_invoice_number
        super().__init__(
            f"Invoice {existing_invoice_number} already covers this period "
            f"for project {project_id} (contract {contract_id})"
        )


class InvoiceNumberConflictError(BillingError):
    """Raised when an invoice number is already taken."""

    pass


class StorageError(Exception):
    """Raised when the data-access layer fails."""

    pass


class TransientStorageError(StorageError):
    """A storage failure that may succeed when retried (lock timeout, dropped connection)."""

    pass


class RecordAlreadyInvoicedError(BillingError):
    """Raised when an invoice would bill ledger records another invoice already billed.

    Attributes:
        links: Mapping of record id to the id of the invoice holding it
    """

    def __init__(self, links: Dict[str, Optional[str]]):
        self.links = dict(links)
        rendered = ", ".join(
            f"{record_id} ({invoice_id or 'invoiced'})"
            for record_id, invoice_id in self.links.items()
        )
        super().__init__(f"Ledger records already invoiced: {rendered}")
