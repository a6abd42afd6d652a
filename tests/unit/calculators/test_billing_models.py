"""Tests for billing model parsing."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from billing_engine.calculators.billing_models import (
    FixedFeeModel,
    HourlyModel,
    RetainerModel,
    SubscriptionModel,
    billing_model_for_contract,
    parse_billing_model,
    parse_billing_models,
)
from billing_engine.models import BillingContract, BillingCycle


class TestParseBillingModel:
    """Test validation of raw billing model payloads."""

    def test_hourly(self):
        model = parse_billing_model({"type": "HOURLY", "hourly_rate": 95})

        assert isinstance(model, HourlyModel)
        assert model.hourly_rate == Decimal("95")

    def test_type_is_case_insensitive(self):
        assert isinstance(parse_billing_model({"type": "retainer"}), RetainerModel)

    def test_fixed_fee_with_payments(self):
        model = parse_billing_model(
            {
                "type": "FIXED_FEE",
                "milestone_payments": [{"milestone_id": "M1", "amount": "3000"}],
            }
        )

        assert isinstance(model, FixedFeeModel)
        assert model.milestone_payments[0].amount == Decimal("3000")

    def test_milestone_alias(self):
        """Test MILESTONE is billed by the fixed-fee model."""
        model = parse_billing_model({"type": "MILESTONE"})

        assert isinstance(model, FixedFeeModel)
        assert model.type == "MILESTONE"

    def test_unknown_type_returns_none(self):
        assert parse_billing_model({"type": "BARTER"}) is None
        assert parse_billing_model({}) is None

    def test_invalid_parameters_raise(self):
        with pytest.raises(ValidationError):
            parse_billing_model({"type": "HOURLY", "hourly_rate": "-1"})

    def test_model_instances_pass_through(self):
        model = SubscriptionModel()
        assert parse_billing_model(model) is model

    def test_parse_list_skips_unknown(self):
        """Test unknown entries are dropped and order is preserved."""
        models = parse_billing_models(
            [{"type": "HOURLY"}, {"type": "CRYPTO"}, {"type": "SUBSCRIPTION"}]
        )

        assert [type(m) for m in models] == [HourlyModel, SubscriptionModel]


class TestBillingModelForContract:
    """Test mapping stored contracts to billing models."""

    def _contract(self, contract_type, **extra):
        return BillingContract(
            id="K1", project_id="P1", contract_type=contract_type, **extra
        )

    def test_hourly_carries_rate(self):
        model = billing_model_for_contract(self._contract("HOURLY", hourly_rate="120"))

        assert isinstance(model, HourlyModel)
        assert model.hourly_rate == Decimal("120")

    @pytest.mark.parametrize("contract_type", ["FIXED_FEE", "MILESTONE"])
    def test_fixed_fee_has_no_payments(self, contract_type):
        model = billing_model_for_contract(self._contract(contract_type))

        assert isinstance(model, FixedFeeModel)
        assert model.milestone_payments == []

    def test_retainer(self):
        assert isinstance(billing_model_for_contract(self._contract("RETAINER")), RetainerModel)

    def test_subscription_carries_cycle(self):
        model = billing_model_for_contract(
            self._contract("SUBSCRIPTION", billing_cycle="QUARTERLY")
        )

        assert model.billing_cycle == BillingCycle.QUARTERLY

    def test_mixed_has_no_model(self):
        assert billing_model_for_contract(self._contract("MIXED")) is None
