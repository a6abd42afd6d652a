"""Aggregators that combine several billing calculations into one result."""

from billing_engine.aggregators.mixed_billing_aggregator import MixedBillingAggregator

__all__ = [
    "MixedBillingAggregator",
]
