"""Unit tests for CLI output formatters."""

from decimal import Decimal

import click

from billing_engine.cli.utils.formatters import (
    format_error,
    format_info,
    format_money,
    format_success,
    format_table,
    format_warning,
)


class TestFormatters:
    """Test suite for CLI output formatters."""

    def test_message_formatters_keep_text_and_symbol(self):
        assert click.unstyle(format_success("Saved")) == "✓ Saved"
        assert click.unstyle(format_error("Failed")) == "✗ Failed"
        assert click.unstyle(format_warning("Careful")) == "⚠ Careful"
        assert click.unstyle(format_info("Note")) == "ℹ Note"

    def test_format_money(self):
        assert format_money(Decimal("2612.5"), "USD") == "2,612.50 USD"
        assert format_money(Decimal("0")) == "0.00"
        assert format_money(Decimal("1234567.005")) == "1,234,567.01"

    def test_format_table_with_headers_and_rows(self):
        """Test columns are padded to the widest cell."""
        result = format_table(["Component", "Amount"], [["Labor", "1,000.00"]])

        assert result.splitlines() == [
            "+-----------+----------+",
            "| Component | Amount   |",
            "+-----------+----------+",
            "| Labor     | 1,000.00 |",
            "+-----------+----------+",
        ]

    def test_format_table_with_empty_rows(self):
        result = format_table(["Invoice", "Total"], [])

        assert "Invoice" in result
        assert len(result.splitlines()) == 3

    def test_format_table_truncates_long_cells(self):
        result = format_table(["Notes"], [["x" * 50]], max_width=10)

        assert "| xxxxxxxxxx |" in result

    def test_format_table_without_headers(self):
        assert format_table([], [["a"]]) == ""
