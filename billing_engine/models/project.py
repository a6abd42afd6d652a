"""Project and contract data models for the billing engine.

This module defines the Project, BillingContract and MilestonePayment models
which describe who is billed and under which arrangement.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from billing_engine.models.base import BaseDataModel, coerce_decimal
from billing_engine.models.enums import BillingCycle, ContractType, ProjectStatus


class Project(BaseDataModel):
    """Represents a client project.

    Attributes:
        id: Unique project identifier
        client_id: Client who receives the invoices
        name: Project name
        status: Lifecycle status; only ACTIVE projects are auto-invoiced

    Example:
        >>> project = Project(id="P1", client_id="C1", name="Website Redesign")
        >>> project.status
        <ProjectStatus.ACTIVE: 'ACTIVE'>
    """

    id: str = Field(..., min_length=1, description="Unique project identifier")
    client_id: str = Field(..., min_length=1, description="Billed client")
    name: str = Field("", description="Project name")
    status: ProjectStatus = Field(ProjectStatus.ACTIVE, description="Project status")

    @field_validator("id", "client_id")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Validate that identifiers are not empty or whitespace only.

        Args:
            v: The value to validate
            info: Field validation info

        Returns:
            The stripped value

        Raises:
            ValueError: If the value is empty or whitespace only
        """
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()


class BillingContract(BaseDataModel):
    """A billing arrangement attached to a project.

    A project may carry several active contracts at once, for example a
    retainer plus a milestone contract. Which amount field is meaningful
    depends on ``contract_type``.

    Attributes:
        id: Unique contract identifier
        project_id: Project the contract belongs to
        contract_type: Billing arrangement
        billing_cycle: Auto-invoicing cadence
        hourly_rate: Rate for HOURLY contracts
        fixed_amount: Recurring charge for SUBSCRIPTION contracts
        retainer_amount: Prepaid balance for RETAINER contracts
        is_active: Whether the contract is in force
        auto_invoice: Whether the scheduler may invoice it

    Example:
        >>> contract = BillingContract(
        ...     id="K1",
        ...     project_id="P1",
        ...     contract_type="RETAINER",
        ...     retainer_amount="2000",
        ... )
        >>> contract.retainer_amount
        Decimal('2000')
    """

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    contract_type: ContractType
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    fixed_amount: Optional[Decimal] = Field(None, ge=0)
    retainer_amount: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    auto_invoice: bool = False

    @field_validator("hourly_rate", "fixed_amount", "retainer_amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        """Convert numeric values to Decimal for precision; blanks become None."""
        if isinstance(v, str) and not v.strip():
            return None
        return coerce_decimal(v)


class MilestonePayment(BaseDataModel):
    """Declares how much a milestone is worth when it is billed.

    Supplied by the caller of fixed-fee billing; the engine never persists it.
    """

    milestone_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)

    @field_validator("amount", "percentage", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return coerce_decimal(v)
