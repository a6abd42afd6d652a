"""Data-access layer for the billing engine.

- BillingRepository: interface consumed by the engine
- InMemoryBillingRepository: thread-safe in-process store
- CsvLedgerRepository: pandas-backed CSV ledger directory
- RetryingRepository: retries transient failures of another repository
"""

from billing_engine.storage.base import BillingRepository, ConsumedItems
from billing_engine.storage.csv_ledger import CsvLedgerRepository
from billing_engine.storage.memory import InMemoryBillingRepository
from billing_engine.storage.retrying import RetryingRepository

__all__ = [
    "BillingRepository",
    "ConsumedItems",
    "CsvLedgerRepository",
    "InMemoryBillingRepository",
    "RetryingRepository",
]
