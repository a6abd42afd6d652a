"""CLI utility functions."""

from billing_engine.cli.utils.formatters import (
    format_error,
    format_info,
    format_money,
    format_success,
    format_table,
    format_warning,
)
from billing_engine.cli.utils.progress import ProgressTracker

__all__ = [
    "format_error",
    "format_info",
    "format_money",
    "format_success",
    "format_table",
    "format_warning",
    "ProgressTracker",
]
