"""Outcome report of one auto-invoicing sweep."""

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from billing_engine.models import Invoice


class TaskOutcome(str, Enum):
    """What happened to one (project, contract) work unit."""

    GENERATED = "GENERATED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass
class TaskResult:
    """Result of processing one (project, contract) pair.

    Attributes:
        project_id: Project the task billed
        contract_id: Contract the task billed (None for planning failures)
        outcome: Generated, skipped or failed
        invoice: The generated invoice, for GENERATED outcomes
        reason: Why the task was skipped
        error: Error message, for FAILED outcomes
    """

    project_id: str
    contract_id: Optional[str]
    outcome: TaskOutcome
    invoice: Optional[Invoice] = None
    reason: str = ""
    error: str = ""

    def __str__(self) -> str:
        target = self.project_id
        if self.contract_id:
            target = f"{self.project_id}/{self.contract_id}"
        if self.outcome == TaskOutcome.GENERATED and self.invoice is not None:
            return (
                f"[GENERATED] {target}: {self.invoice.invoice_number} "
                f"({self.invoice.total} {self.invoice.currency})"
            )
        if self.outcome == TaskOutcome.FAILED:
            return f"[FAILED] {target}: {self.error}"
        return f"[SKIPPED] {target}: {self.reason}"


@dataclass
class SweepReport:
    """Collects the per-task results of a sweep.

    Example:
        >>> report = scheduler.run()
        >>> report.generated_count, report.failed_count
        (2, 1)
        >>> print(report.format())
    """

    started_at: dt.datetime
    finished_at: Optional[dt.datetime] = None
    results: List[TaskResult] = field(default_factory=list)

    def add(self, result: TaskResult) -> None:
        self.results.append(result)

    def _with_outcome(self, outcome: TaskOutcome) -> List[TaskResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def generated(self) -> List[TaskResult]:
        return self._with_outcome(TaskOutcome.GENERATED)

    @property
    def skipped(self) -> List[TaskResult]:
        return self._with_outcome(TaskOutcome.SKIPPED)

    @property
    def failed(self) -> List[TaskResult]:
        return self._with_outcome(TaskOutcome.FAILED)

    @property
    def generated_count(self) -> int:
        return len(self.generated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def invoices(self) -> List[Invoice]:
        return [r.invoice for r in self.generated if r.invoice is not None]

    def has_failures(self) -> bool:
        return self.failed_count > 0

    def summary(self) -> str:
        return (
            f"{self.generated_count} generated, {self.skipped_count} skipped, "
            f"{self.failed_count} failed"
        )

    def format(self) -> str:
        """Format the sweep for display, grouped by outcome."""
        if not self.results:
            return "Auto-invoicing sweep - nothing to invoice"

        lines = [f"Auto-invoicing sweep - {self.summary()}", "=" * 60]
        for title, group in (
            ("GENERATED", self.generated),
            ("SKIPPED", self.skipped),
            ("FAILED", self.failed),
        ):
            if group:
                lines.append(f"\n{title}:")
                lines.extend(f"  - {r}" for r in group)
        return "\n".join(lines)
