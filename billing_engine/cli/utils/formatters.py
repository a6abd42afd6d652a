"""Output formatting utilities for CLI."""

from decimal import Decimal
from typing import List

import click

from billing_engine.calculators.money import round_money


def format_success(message: str) -> str:
    """Format a success message in green."""
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message in red."""
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message in yellow."""
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    """Format an info message in blue."""
    return click.style(f"ℹ {message}", fg="blue")


def format_money(amount: Decimal, currency: str = "") -> str:
    """Format an amount with thousands separators and two decimals.

    Example:
        >>> format_money(Decimal("2612.5"), "USD")
        '2,612.50 USD'
    """
    text = f"{round_money(amount):,.2f}"
    return f"{text} {currency}" if currency else text


def format_table(headers: List[str], rows: List[List[str]], max_width: int = 80) -> str:
    """Format rows as a boxed text table.

    Args:
        headers: Column headers
        rows: Data rows; cells are converted with ``str``
        max_width: Maximum width of a column; longer cells are truncated

    Returns:
        The table as a single string
    """
    if not headers:
        return ""

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(widths)]):
            widths[i] = max(widths[i], len(str(cell)))
    widths = [min(w, max_width) for w in widths]

    def render(cells: List[str]) -> str:
        return (
            "|"
            + "|".join(
                f" {str(cell)[: widths[i]]:<{widths[i]}} "
                for i, cell in enumerate(cells[: len(widths)])
            )
            + "|"
        )

    separator = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    lines = [separator, render(headers), separator]
    if rows:
        lines.extend(render(row) for row in rows)
        lines.append(separator)
    return "\n".join(lines)
