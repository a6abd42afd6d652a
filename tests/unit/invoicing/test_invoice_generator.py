"""Unit tests for invoice generation and overdue maintenance."""

import datetime as dt
from decimal import Decimal

import pytest

from billing_engine.calculators import BillingCalculator, build_result
from billing_engine.config import BillingConfiguration
from billing_engine.exceptions import DuplicateInvoiceError, RecordAlreadyInvoicedError
from billing_engine.invoicing import InvoiceGenerator
from billing_engine.models import (
    BillingContract,
    DateRange,
    Expense,
    ExpenseCategory,
    Invoice,
    InvoiceStatus,
    TimeEntryStatus,
)

NOW = dt.datetime(2024, 5, 31, 18, 0)
MAY = DateRange(start=dt.datetime(2024, 5, 1), end=NOW)
CONFIG = BillingConfiguration(tax_rate=10, payment_terms=30)


@pytest.fixture
def generator(repository):
    return InvoiceGenerator(repository)


@pytest.fixture
def hourly_result(repository):
    return BillingCalculator(repository).calculate_hourly(
        "P1", dt.date(2024, 5, 1), dt.date(2024, 5, 31), CONFIG
    )


def _stored_invoice(invoice_id, status, due_date, total="1000.00", late_fee="0"):
    return Invoice(
        id=invoice_id,
        invoice_number=f"INV-202404-{invoice_id[-4:]}",
        client_id="C1",
        project_id="P1",
        amount=total,
        total=total,
        status=status,
        due_date=due_date,
        created_at=dt.datetime(2024, 4, 1),
        period_start=dt.datetime(2024, 3, 1),
        period_end=dt.datetime(2024, 3, 31),
        late_fee=late_fee,
    )


class TestGenerate:
    """Test invoice creation from billing results."""

    def test_invoice_fields(self, generator, hourly_result):
        invoice = generator.generate(hourly_result, "P1", "C1", CONFIG, now=NOW)

        assert invoice.invoice_number == "INV-202405-0001"
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.client_id == "C1"
        assert invoice.subtotal == Decimal("1050.00")
        assert invoice.tax == Decimal("105.00")
        assert invoice.discount == Decimal("0.00")
        assert invoice.total == invoice.amount == Decimal("1155.00")
        assert invoice.currency == "USD"
        assert invoice.created_at == NOW
        assert invoice.due_date == NOW + dt.timedelta(days=30)

    def test_line_items(self, generator, hourly_result):
        """Test labor and expenses get separate lines."""
        invoice = generator.generate(hourly_result, "P1", "C1", CONFIG, now=NOW)

        assert [(i.description, i.amount) for i in invoice.line_items] == [
            ("Professional Services", Decimal("1000.00")),
            ("Project Expenses", Decimal("50.00")),
        ]

    def test_no_expense_line_without_expenses(self, repository, generator):
        result = BillingCalculator(repository).calculate_hourly(
            "P1", dt.date(2024, 5, 1), dt.date(2024, 5, 2), CONFIG
        )

        invoice = generator.generate(result, "P1", "C1", CONFIG, now=NOW)

        assert [i.description for i in invoice.line_items] == ["Professional Services"]

    def test_notes_and_period(self, generator, hourly_result):
        invoice = generator.generate(
            hourly_result, "P1", "C1", CONFIG, billing_period=MAY, now=NOW
        )

        assert invoice.period_start == MAY.start
        assert invoice.period_end == MAY.end
        assert invoice.notes == (
            "Invoice for services rendered during 2024-05-01 to 2024-05-31"
        )

    def test_numbers_are_sequential_per_month(self, generator):
        """Test the monthly sequence increments and restarts each month."""
        fee = build_result(Decimal("250"), Decimal("0"), CONFIG, MAY)

        first = generator.generate(fee, "P1", "C1", CONFIG, now=NOW)
        second = generator.generate(fee, "P1", "C1", CONFIG, now=NOW)
        june = generator.generate(fee, "P1", "C1", CONFIG, now=dt.datetime(2024, 6, 1))

        assert first.invoice_number == "INV-202405-0001"
        assert second.invoice_number == "INV-202405-0002"
        assert june.invoice_number == "INV-202406-0001"

    def test_custom_prefix(self, repository, hourly_result):
        generator = InvoiceGenerator(repository, number_prefix="ACME")

        invoice = generator.generate(hourly_result, "P1", "C1", CONFIG, now=NOW)

        assert invoice.invoice_number == "ACME-202405-0001"

    def test_consumed_records_are_marked(self, repository, generator, hourly_result):
        """Test invoiced entries and expenses are linked to the new invoice."""
        invoice = generator.generate(hourly_result, "P1", "C1", CONFIG, now=NOW)

        entries = repository.find_time_entries("P1", billable=True)
        assert {e.invoice_id for e in entries} == {invoice.id}
        assert {e.status for e in entries} == {TimeEntryStatus.INVOICED}
        assert repository.find_expenses("P1")[0].invoice_id == invoice.id

        again = BillingCalculator(repository).calculate_hourly(
            "P1", dt.date(2024, 5, 1), dt.date(2024, 5, 31), CONFIG
        )
        assert again.amount == Decimal("0")

    def test_non_billable_entry_untouched(self, repository, generator, hourly_result):
        generator.generate(hourly_result, "P1", "C1", CONFIG, now=NOW)

        internal = repository.find_time_entries("P1", billable=False)[0]
        assert internal.invoice_id is None

    def test_retainer_usage_flagged(self, repository, generator):
        repository.add_contract(
            BillingContract(
                id="K-RET", project_id="P1", contract_type="RETAINER",
                retainer_amount="100",
            )
        )
        repository.add_expense(
            Expense(
                id="svc-1", project_id="P1", date=dt.date(2024, 5, 8),
                amount="300", category=ExpenseCategory.SERVICES,
            )
        )
        result = BillingCalculator(repository).calculate_retainer(
            "P1", dt.date(2024, 5, 1), dt.date(2024, 5, 31), CONFIG
        )

        invoice = generator.generate(result, "P1", "C1", CONFIG, now=NOW)

        assert all(u.invoiced for u in result.retainer_usage)
        svc = [x for x in repository.find_expenses("P1") if x.id == "svc-1"][0]
        assert svc.invoice_id == invoice.id

    def test_duplicate_for_contract_rejected(self, repository, generator, hourly_result):
        """Test a second invoice for the same contract and period is refused."""
        first = generator.generate(
            hourly_result, "P1", "C1", CONFIG,
            contract_id="K-HOURLY", billing_period=MAY, now=NOW,
        )

        with pytest.raises(DuplicateInvoiceError) as exc_info:
            generator.generate(
                hourly_result, "P1", "C1", CONFIG,
                contract_id="K-HOURLY", billing_period=MAY, now=NOW,
            )

        assert exc_info.value.existing_invoice_number == first.invoice_number
        assert len(repository.find_invoices(project_id="P1")) == 1

    def test_billed_records_rejected_for_other_contract(
        self, repository, generator, hourly_result
    ):
        """Test a stale result cannot bill its records on a second contract."""
        first = generator.generate(
            hourly_result, "P1", "C1", CONFIG,
            contract_id="K-HOURLY", billing_period=MAY, now=NOW,
        )

        with pytest.raises(RecordAlreadyInvoicedError) as exc_info:
            generator.generate(
                hourly_result, "P1", "C1", CONFIG,
                contract_id="K-HOURLY-2", billing_period=MAY, now=NOW,
            )

        assert set(exc_info.value.links.values()) == {first.id}
        assert [i.id for i in repository.find_invoices()] == [first.id]


class TestMarkOverdue:
    """Test overdue detection."""

    def test_only_sent_past_due_invoices_change(self, repository, generator):
        repository.add_invoice(
            _stored_invoice("inv-0001", InvoiceStatus.SENT, dt.datetime(2024, 5, 1))
        )
        repository.add_invoice(
            _stored_invoice("inv-0002", InvoiceStatus.SENT, dt.datetime(2024, 7, 1))
        )
        repository.add_invoice(
            _stored_invoice("inv-0003", InvoiceStatus.DRAFT, dt.datetime(2024, 5, 1))
        )
        repository.add_invoice(
            _stored_invoice("inv-0004", InvoiceStatus.PAID, dt.datetime(2024, 5, 1))
        )

        updated = generator.mark_overdue_invoices(now=NOW)

        assert [i.id for i in updated] == ["inv-0001"]
        statuses = {i.id: i.status for i in repository.find_invoices()}
        assert statuses == {
            "inv-0001": InvoiceStatus.OVERDUE,
            "inv-0002": InvoiceStatus.SENT,
            "inv-0003": InvoiceStatus.DRAFT,
            "inv-0004": InvoiceStatus.PAID,
        }

    def test_nothing_overdue(self, generator):
        assert generator.mark_overdue_invoices(now=NOW) == []


class TestApplyLateFees:
    """Test late fee application."""

    def test_fee_added_once(self, repository, generator):
        """Test 1.5% of the total is added and not charged again."""
        repository.add_invoice(
            _stored_invoice(
                "inv-0001", InvoiceStatus.OVERDUE, dt.datetime(2024, 5, 1),
                total="1155.00",
            )
        )

        updated = generator.apply_late_fees()

        assert len(updated) == 1
        assert updated[0].late_fee == Decimal("17.33")
        assert updated[0].total == Decimal("1172.33")
        assert generator.apply_late_fees() == []
        assert repository.find_invoices()[0].total == Decimal("1172.33")

    def test_custom_percentage(self, repository, generator):
        repository.add_invoice(
            _stored_invoice("inv-0001", InvoiceStatus.OVERDUE, dt.datetime(2024, 5, 1))
        )

        updated = generator.apply_late_fees(percentage=Decimal("5"))

        assert updated[0].late_fee == Decimal("50.00")

    def test_only_overdue_invoices(self, repository, generator):
        repository.add_invoice(
            _stored_invoice("inv-0001", InvoiceStatus.SENT, dt.datetime(2024, 5, 1))
        )

        assert generator.apply_late_fees() == []

    def test_existing_fee_kept(self, repository, generator):
        repository.add_invoice(
            _stored_invoice(
                "inv-0001", InvoiceStatus.OVERDUE, dt.datetime(2024, 5, 1),
                total="1010.00", late_fee="10.00",
            )
        )

        assert generator.apply_late_fees() == []
