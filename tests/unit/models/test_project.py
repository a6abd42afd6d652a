"""Unit tests for project and contract models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from billing_engine.models import (
    BillingContract,
    BillingCycle,
    ContractType,
    MilestonePayment,
    Project,
    ProjectStatus,
)


class TestProject:
    """Test cases for Project."""

    def test_project_defaults(self):
        project = Project(id="P1", client_id="C1")

        assert project.name == ""
        assert project.status == ProjectStatus.ACTIVE

    def test_identifiers_are_stripped(self):
        project = Project(id="  P1 ", client_id=" C1")

        assert project.id == "P1"
        assert project.client_id == "C1"

    @pytest.mark.parametrize("field", ["id", "client_id"])
    def test_whitespace_identifiers_rejected(self, field):
        """Test that whitespace-only identifiers are rejected."""
        values = {"id": "P1", "client_id": "C1", field: "   "}

        with pytest.raises(ValidationError) as exc_info:
            Project(**values)

        assert "cannot be empty or whitespace" in str(exc_info.value)

    def test_status_from_string(self):
        project = Project(id="P1", client_id="C1", status="ON_HOLD")
        assert project.status == ProjectStatus.ON_HOLD


class TestBillingContract:
    """Test cases for BillingContract."""

    def test_contract_defaults(self):
        contract = BillingContract(id="K1", project_id="P1", contract_type="HOURLY")

        assert contract.contract_type == ContractType.HOURLY
        assert contract.billing_cycle == BillingCycle.MONTHLY
        assert contract.is_active is True
        assert contract.auto_invoice is False
        assert contract.hourly_rate is None

    def test_amounts_are_decimal(self):
        """Test amount fields are coerced to Decimal."""
        contract = BillingContract(
            id="K1",
            project_id="P1",
            contract_type="RETAINER",
            retainer_amount=2000,
            fixed_amount=0.1,
        )

        assert contract.retainer_amount == Decimal("2000")
        assert contract.fixed_amount == Decimal("0.1")

    def test_blank_amounts_become_none(self):
        """Test empty CSV cells load as missing amounts."""
        contract = BillingContract(
            id="K1", project_id="P1", contract_type="SUBSCRIPTION", fixed_amount="  "
        )

        assert contract.fixed_amount is None

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            BillingContract(
                id="K1", project_id="P1", contract_type="HOURLY", hourly_rate="-5"
            )

    def test_unknown_contract_type_rejected(self):
        with pytest.raises(ValidationError):
            BillingContract(id="K1", project_id="P1", contract_type="BARTER")


class TestMilestonePayment:
    """Test cases for MilestonePayment."""

    def test_payment_amount(self):
        payment = MilestonePayment(milestone_id="M1", amount="3000", percentage=50)

        assert payment.amount == Decimal("3000")
        assert payment.percentage == Decimal("50")

    def test_percentage_bounds(self):
        with pytest.raises(ValidationError):
            MilestonePayment(milestone_id="M1", amount="100", percentage="120")
