"""Tests for the sweep report."""

import datetime as dt

from billing_engine.models import Invoice
from billing_engine.scheduling import SweepReport, TaskOutcome, TaskResult

STARTED = dt.datetime(2024, 5, 31, 18, 0)


def _invoice():
    return Invoice(
        id="inv-1",
        invoice_number="INV-202405-0001",
        client_id="C1",
        project_id="P1",
        amount="1050.00",
        total="1050.00",
        due_date=dt.datetime(2024, 6, 30, 18, 0),
        created_at=STARTED,
        period_start=dt.datetime(2024, 5, 1),
        period_end=STARTED,
    )


def _report():
    report = SweepReport(started_at=STARTED)
    report.add(
        TaskResult("P1", "K1", TaskOutcome.GENERATED, invoice=_invoice())
    )
    report.add(TaskResult("P2", "K2", TaskOutcome.SKIPPED, reason="nothing to bill (0.00)"))
    report.add(TaskResult("P3", "K3", TaskOutcome.FAILED, error="StorageError: bad row"))
    return report


class TestTaskResult:
    def test_generated_str(self):
        result = TaskResult("P1", "K1", TaskOutcome.GENERATED, invoice=_invoice())

        assert str(result) == "[GENERATED] P1/K1: INV-202405-0001 (1050.00 USD)"

    def test_failure_without_contract(self):
        result = TaskResult("P9", None, TaskOutcome.FAILED, error="boom")

        assert str(result) == "[FAILED] P9: boom"


class TestSweepReport:
    """Test SweepReport aggregation."""

    def test_counts(self):
        report = _report()

        assert report.generated_count == 1
        assert report.skipped_count == 1
        assert report.failed_count == 1
        assert report.has_failures()
        assert [i.invoice_number for i in report.invoices] == ["INV-202405-0001"]

    def test_summary(self):
        assert _report().summary() == "1 generated, 1 skipped, 1 failed"

    def test_format_groups_by_outcome(self):
        text = _report().format()

        assert text.startswith("Auto-invoicing sweep - 1 generated, 1 skipped, 1 failed")
        assert text.index("GENERATED:") < text.index("SKIPPED:") < text.index("FAILED:")
        assert "  - [SKIPPED] P2/K2: nothing to bill (0.00)" in text
        assert "  - [FAILED] P3/K3: StorageError: bad row" in text

    def test_empty_report(self):
        report = SweepReport(started_at=STARTED)

        assert not report.has_failures()
        assert report.format() == "Auto-invoicing sweep - nothing to invoice"
