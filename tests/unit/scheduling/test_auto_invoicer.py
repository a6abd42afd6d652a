"""Unit tests for the auto-invoicing scheduler."""

import datetime as dt
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest

from billing_engine.calculators import BillingCalculator
from billing_engine.config import BillingConfiguration
from billing_engine.exceptions import TransientStorageError
from billing_engine.invoicing import InvoiceGenerator
from billing_engine.models import (
    BillingContract,
    Expense,
    ExpenseCategory,
    Project,
    ProjectMilestone,
    TimeEntry,
)
from billing_engine.scheduling import AutoInvoicingScheduler, TaskOutcome


def _add_hourly_project(repository, project_id, hours="8"):
    repository.add_project(Project(id=project_id, client_id=f"C-{project_id}"))
    repository.add_contract(
        BillingContract(
            id=f"K-{project_id}",
            project_id=project_id,
            contract_type="HOURLY",
            hourly_rate="100",
            auto_invoice=True,
        )
    )
    repository.add_time_entry(
        TimeEntry(
            id=f"te-{project_id}",
            project_id=project_id,
            date=dt.date(2024, 5, 14),
            hours=hours,
            rate="100",
            status="APPROVED",
        )
    )


def _scheduler(repository, settings, max_workers=1):
    return AutoInvoicingScheduler(
        repository,
        BillingCalculator(repository),
        InvoiceGenerator(repository),
        settings,
        max_workers=max_workers,
    )


def _assert_billed_once(repository, ledger_value):
    """Every billable record sits on exactly one stored invoice."""
    invoices = repository.find_invoices(project_id="P1")
    stored_ids = {i.id for i in invoices}
    records = repository.find_time_entries("P1", billable=True) + repository.find_expenses("P1")

    assert all(r.invoice_id in stored_ids for r in records)
    assert sum(i.total for i in invoices) <= Decimal(ledger_value)
    return {r.id: r.invoice_id for r in records}


class TestAutoInvoicingScheduler:
    """Test cases for AutoInvoicingScheduler."""

    def test_generates_invoice_for_hourly_contract(
        self, repository, settings, sweep_time
    ):
        report = _scheduler(repository, settings).run(now=sweep_time)

        assert report.generated_count == 1
        invoice = report.invoices[0]
        assert invoice.project_id == "P1"
        assert invoice.contract_id == "K-HOURLY"
        assert invoice.total == Decimal("1050.00")
        assert invoice.period_start == dt.datetime(2024, 5, 1)
        assert invoice.period_end == sweep_time
        assert invoice.created_at == sweep_time

    def test_second_run_is_idempotent(self, repository, settings, sweep_time):
        """Test running the sweep twice produces exactly one invoice."""
        scheduler = _scheduler(repository, settings)

        first = scheduler.run(now=sweep_time)
        second = scheduler.run(now=sweep_time + dt.timedelta(minutes=5))

        assert first.generated_count == 1
        assert second.generated_count == 0
        assert second.skipped[0].reason == (
            f"already invoiced by {first.invoices[0].invoice_number}"
        )
        assert len(repository.find_invoices(project_id="P1")) == 1

    def test_failure_is_isolated(self, repository, settings, sweep_time):
        """Test a failing project does not stop the others."""
        _add_hourly_project(repository, "P2")
        _add_hourly_project(repository, "P3")
        scheduler = _scheduler(repository, settings)
        real_calculate = scheduler.calculator.calculate_for_model

        def flaky(project_id, *args, **kwargs):
            if project_id == "P2":
                raise TransientStorageError("ledger locked")
            return real_calculate(project_id, *args, **kwargs)

        with patch.object(scheduler.calculator, "calculate_for_model", side_effect=flaky):
            report = scheduler.run(now=sweep_time)

        outcomes = {r.project_id: r.outcome for r in report.results}
        assert outcomes == {
            "P1": TaskOutcome.GENERATED,
            "P2": TaskOutcome.FAILED,
            "P3": TaskOutcome.GENERATED,
        }
        assert report.failed[0].error == "TransientStorageError: ledger locked"
        assert report.has_failures()
        assert len(repository.find_invoices(project_id="P2")) == 0

    def test_zero_amount_is_skipped(self, repository, settings, sweep_time):
        """Test a contract with nothing to bill never reaches the generator."""
        _add_hourly_project(repository, "P2", hours="0")
        scheduler = _scheduler(repository, settings)

        with patch.object(
            scheduler.generator, "generate", wraps=scheduler.generator.generate
        ) as generate:
            report = scheduler.run(now=sweep_time)

        skipped = {r.project_id: r.reason for r in report.skipped}
        assert skipped == {"P2": "nothing to bill (0.00)"}
        assert generate.call_count == 1
        assert generate.call_args.args[1] == "P1"

    def test_mixed_contract_skipped(self, repository, settings, sweep_time):
        repository.add_contract(
            BillingContract(
                id="K-MIX", project_id="P1", contract_type="MIXED", auto_invoice=True
            )
        )

        report = _scheduler(repository, settings).run(now=sweep_time)

        skipped = {r.contract_id: r.reason for r in report.skipped}
        assert skipped == {"K-MIX": "unsupported contract type MIXED"}
        assert report.generated_count == 1

    def test_fixed_fee_contract_bills_nothing(self, repository, settings, sweep_time):
        """Test stored fixed-fee contracts carry no payments to bill."""
        repository.add_contract(
            BillingContract(
                id="K-FIX", project_id="P1", contract_type="FIXED_FEE",
                auto_invoice=True,
            )
        )
        repository.add_milestone(
            ProjectMilestone(id="M1", project_id="P1", status="COMPLETED")
        )

        report = _scheduler(repository, settings).run(now=sweep_time)

        fixed = [r for r in report.results if r.contract_id == "K-FIX"][0]
        assert fixed.outcome == TaskOutcome.SKIPPED
        assert fixed.reason.startswith("nothing to bill")

    def test_subscription_and_retainer_contracts(self, repository, settings, sweep_time):
        """Test a subscription bills its fee while an unused retainer is skipped."""
        repository.add_contract(
            BillingContract(
                id="K-SUB", project_id="P1", contract_type="SUBSCRIPTION",
                fixed_amount="299", auto_invoice=True,
            )
        )
        repository.add_contract(
            BillingContract(
                id="K-RET", project_id="P1", contract_type="RETAINER",
                retainer_amount="5000", auto_invoice=True,
            )
        )

        report = _scheduler(repository, settings).run(now=sweep_time)

        by_contract = {r.contract_id: r for r in report.results}
        assert by_contract["K-SUB"].outcome == TaskOutcome.GENERATED
        assert by_contract["K-SUB"].invoice.total == Decimal("299.00")
        assert by_contract["K-RET"].outcome == TaskOutcome.SKIPPED
        assert by_contract["K-HOURLY"].outcome == TaskOutcome.GENERATED

    def test_manual_contracts_and_inactive_projects_ignored(
        self, repository, settings, sweep_time
    ):
        _add_hourly_project(repository, "P2")
        repository.add_project(Project(id="P2", client_id="C-P2", status="ON_HOLD"))
        repository.add_contract(
            BillingContract(
                id="K-MANUAL", project_id="P1", contract_type="HOURLY",
                auto_invoice=False,
            )
        )

        report = _scheduler(repository, settings).run(now=sweep_time)

        assert [(r.project_id, r.contract_id) for r in report.results] == [
            ("P1", "K-HOURLY")
        ]

    def test_planning_failure_recorded(self, repository, settings, sweep_time):
        scheduler = _scheduler(repository, settings)

        with patch.object(
            repository,
            "find_active_contracts",
            side_effect=TransientStorageError("timeout"),
        ):
            report = scheduler.run(now=sweep_time)

        assert report.failed_count == 1
        assert report.failed[0].contract_id is None

    def test_parallel_workers(self, repository, settings, sweep_time):
        """Test a multi-threaded sweep bills every project exactly once."""
        for index in range(2, 8):
            _add_hourly_project(repository, f"P{index}")
        scheduler = _scheduler(repository, settings, max_workers=4)

        report = scheduler.run(now=sweep_time)
        rerun = scheduler.run(now=sweep_time)

        assert report.generated_count == 7
        numbers = [i.invoice_number for i in report.invoices]
        assert len(set(numbers)) == 7
        assert rerun.generated_count == 0
        assert len(repository.find_invoices()) == 7

    def test_concurrent_sweeps_do_not_double_bill(self, repository, settings, sweep_time):
        """Test the repository check catches a race the pre-check missed."""
        scheduler = _scheduler(repository, settings)
        tasks, _ = scheduler.plan(sweep_time)
        stale = scheduler.calculator.calculate_hourly(
            "P1", tasks[0].period.start, tasks[0].period.end, BillingConfiguration()
        )

        with patch.object(
            repository, "find_existing_invoice", return_value=None
        ), patch.object(
            scheduler.calculator, "calculate_for_model", return_value=stale
        ):
            first = scheduler.process_task(tasks[0])
            second = scheduler.process_task(tasks[0])

        assert first.outcome == TaskOutcome.GENERATED
        assert second.outcome == TaskOutcome.SKIPPED
        assert second.reason == f"already invoiced by {first.invoice.invoice_number}"

    def test_invalid_worker_count(self, repository, settings):
        with pytest.raises(ValueError, match="max_workers"):
            _scheduler(repository, settings, max_workers=0)


class TestContractsSharingRecords:
    """Test contracts of one project never bill the same ledger record twice."""

    def test_parallel_hourly_contracts_bill_records_once(
        self, repository, settings, sweep_time
    ):
        """Test the slower of two contracts reading the same entries is skipped."""
        repository.add_contract(
            BillingContract(
                id="K-HOURLY-2", project_id="P1", contract_type="HOURLY",
                hourly_rate="100", auto_invoice=True,
            )
        )
        scheduler = _scheduler(repository, settings, max_workers=2)
        real_find = repository.find_time_entries
        both_read = threading.Barrier(2, timeout=5)

        def read_together(*args, **kwargs):
            entries = real_find(*args, **kwargs)
            both_read.wait()
            return entries

        with patch.object(repository, "find_time_entries", side_effect=read_together):
            report = scheduler.run(now=sweep_time)

        assert report.generated_count == 1
        assert report.skipped_count == 1
        assert report.skipped[0].reason.startswith("records already invoiced")
        links = _assert_billed_once(repository, "1050.00")
        assert set(links.values()) == {report.invoices[0].id}
        assert sum(i.total for i in report.invoices) == Decimal("1050.00")

    @pytest.mark.parametrize("max_workers", [1, 2])
    def test_hourly_and_retainer_split_service_expense(
        self, repository, settings, sweep_time, max_workers
    ):
        """Test a billable SERVICES expense is billed by the retainer only."""
        repository.add_contract(
            BillingContract(
                id="K-RET", project_id="P1", contract_type="RETAINER",
                retainer_amount="2000", auto_invoice=True,
            )
        )
        repository.add_expense(
            Expense(
                id="svc-1", project_id="P1", date=dt.date(2024, 5, 8),
                amount="2500", category=ExpenseCategory.SERVICES,
            )
        )

        report = _scheduler(repository, settings, max_workers).run(now=sweep_time)

        totals = {i.contract_id: i.total for i in report.invoices}
        assert totals == {
            "K-HOURLY": Decimal("1050.00"),
            "K-RET": Decimal("500.00"),
        }
        by_contract = {i.contract_id: i.id for i in report.invoices}
        links = _assert_billed_once(repository, "1550.00")
        assert links["svc-1"] == by_contract["K-RET"]
        assert links["ex-1"] == by_contract["K-HOURLY"]
        assert links["te-1"] == by_contract["K-HOURLY"]
