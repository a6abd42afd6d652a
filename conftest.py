"""
Global pytest configuration and fixtures.
"""
import datetime as dt
from decimal import Decimal
from typing import Dict

import pytest

from billing_engine.config import BillingSystemConfig, reload_config
from billing_engine.config.logging_config import reset_logging
from billing_engine.models import (
    BillingContract,
    Expense,
    ExpenseCategory,
    Project,
    TimeEntry,
    TimeEntryStatus,
)
from billing_engine.storage import InMemoryBillingRepository

# Sweep moment used by scheduler tests: inside May 2024, after all seeded data.
SWEEP_TIME = dt.datetime(2024, 5, 31, 18, 0)


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        'LEDGER_DIR': './test-ledger',
        'DEFAULT_CURRENCY': 'USD',
        'DEFAULT_TAX_RATE': '0',
        'PAYMENT_TERMS_DAYS': '30',
        'MAX_RETRIES': '2',
        'RETRY_DELAY': '0',
        'SCHEDULER_MAX_WORKERS': '2',
        'ENVIRONMENT': 'testing',
        'DEBUG': 'false',
        'LOG_LEVEL': 'DEBUG'
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)

    # Clear the global config to force reload with test values
    import billing_engine.config.settings
    billing_engine.config.settings._config = None

    yield test_env_vars

    # Clean up
    billing_engine.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> BillingSystemConfig:
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def settings() -> BillingSystemConfig:
    """Explicit settings that ignore the process environment's billing values."""
    return BillingSystemConfig(
        DEFAULT_TAX_RATE="0",
        DEFAULT_DISCOUNT_RATE="0",
        PAYMENT_TERMS_DAYS=30,
        MAX_RETRIES=2,
        RETRY_DELAY=0,
        SCHEDULER_MAX_WORKERS=1,
    )


@pytest.fixture
def sweep_time() -> dt.datetime:
    return SWEEP_TIME


@pytest.fixture
def repository() -> InMemoryBillingRepository:
    """Repository seeded with one hourly project.

    Project P1 (client C1) has a monthly, auto-invoiced HOURLY contract at
    100/h, three approved billable entries totalling 10 hours in May 2024,
    one billable 50.00 expense and one non-billable entry.
    """
    repo = InMemoryBillingRepository()
    repo.add_project(Project(id="P1", client_id="C1", name="Website Redesign"))
    repo.add_contract(
        BillingContract(
            id="K-HOURLY",
            project_id="P1",
            contract_type="HOURLY",
            billing_cycle="MONTHLY",
            hourly_rate="100",
            auto_invoice=True,
        )
    )
    for entry_id, day, hours in (("te-1", 2, "4"), ("te-2", 9, "3"), ("te-3", 16, "3")):
        repo.add_time_entry(
            TimeEntry(
                id=entry_id,
                project_id="P1",
                date=dt.date(2024, 5, day),
                hours=hours,
                rate="100",
                status=TimeEntryStatus.APPROVED,
            )
        )
    repo.add_time_entry(
        TimeEntry(
            id="te-internal",
            project_id="P1",
            date=dt.date(2024, 5, 20),
            hours="2",
            rate="100",
            billable=False,
            status=TimeEntryStatus.APPROVED,
        )
    )
    repo.add_expense(
        Expense(
            id="ex-1",
            project_id="P1",
            date=dt.date(2024, 5, 10),
            amount=Decimal("50"),
            category=ExpenseCategory.TRAVEL,
            description="Train tickets",
        )
    )
    return repo


@pytest.fixture(autouse=True)
def reset_root_logging():
    """Remove handlers installed by a test so later tests start clean."""
    yield
    reset_logging()


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add unit marker for tests in tests/unit/
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
