"""Automatic recurring-invoice generation.

A sweep visits every active project and each of its active, auto-invoice
contracts. Every (project, contract) pair is an independent work unit: it
resolves its billing period, skips periods the contract was already
invoiced for, runs the matching calculator and stores an invoice when the
amount is positive. A failing unit is recorded in the SweepReport and never
stops the others.
"""

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

from billing_engine.calculators.billing_calculator import BillingCalculator
from billing_engine.calculators.billing_models import billing_model_for_contract
from billing_engine.config.billing import resolve_billing_configuration
from billing_engine.config.settings import BillingSystemConfig
from billing_engine.exceptions import DuplicateInvoiceError, RecordAlreadyInvoicedError
from billing_engine.invoicing.generator import InvoiceGenerator
from billing_engine.models import BillingContract, DateRange, Project
from billing_engine.scheduling.periods import resolve_billing_period
from billing_engine.scheduling.sweep_report import SweepReport, TaskOutcome, TaskResult
from billing_engine.services.error_classifier import ErrorClassifier
from billing_engine.storage.base import BillingRepository
from billing_engine.utils.logging_utils import LogContext, generate_correlation_id

logger = logging.getLogger(__name__)


@dataclass
class InvoicingTask:
    """One (project, contract) pair to bill for ``period``."""

    project: Project
    contract: BillingContract
    period: DateRange
    now: dt.datetime
    sweep_id: str = ""


class AutoInvoicingScheduler:
    """Runs auto-invoicing sweeps over the whole portfolio.

    Tasks run on a ThreadPoolExecutor; ``max_workers=1`` processes them one
    after another. Duplicate prevention does not depend on task ordering:
    the repository re-checks the (project, contract, period) key while
    storing the invoice and refuses ledger records another invoice already
    holds, so contracts of one project never bill the same record twice.

    Args:
        repository: Store providing projects, contracts and ledger data
        calculator: Calculator for single billing models
        generator: Invoice generator used for positive results
        settings: Application settings providing billing defaults
        max_workers: Number of worker threads
        error_classifier: Classifier used to label task failures

    Example:
        >>> scheduler = AutoInvoicingScheduler(repo, calculator, generator, settings)
        >>> report = scheduler.run()
        >>> print(report.summary())
        2 generated, 1 skipped, 0 failed
    """

    def __init__(
        self,
        repository: BillingRepository,
        calculator: BillingCalculator,
        generator: InvoiceGenerator,
        settings: BillingSystemConfig,
        max_workers: int = 1,
        error_classifier: Optional[ErrorClassifier] = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.repository = repository
        self.calculator = calculator
        self.generator = generator
        self.settings = settings
        self.max_workers = max_workers
        self.error_classifier = error_classifier or ErrorClassifier()

    def plan(
        self, now: dt.datetime, sweep_id: str = ""
    ) -> Tuple[List[InvoicingTask], List[TaskResult]]:
        """Build the work units for a sweep.

        Returns:
            Tuple of (tasks to run, failures met while listing contracts)
        """
        tasks: List[InvoicingTask] = []
        failures: List[TaskResult] = []

        for project in self.repository.find_active_projects():
            try:
                contracts = self.repository.find_active_contracts(
                    project.id, auto_invoice_only=True
                )
            except Exception as e:
                logger.error(
                    f"Could not load contracts for project {project.id}: {e}",
                    exc_info=True,
                )
                failures.append(
                    TaskResult(
                        project_id=project.id,
                        contract_id=None,
                        outcome=TaskOutcome.FAILED,
                        error=f"{type(e).__name__}: {e}",
                    )
                )
                continue

            for contract in contracts:
                tasks.append(
                    InvoicingTask(
                        project=project,
                        contract=contract,
                        period=resolve_billing_period(contract.billing_cycle, now),
                        now=now,
                        sweep_id=sweep_id,
                    )
                )

        return tasks, failures

    def run(self, now: Optional[dt.datetime] = None) -> SweepReport:
        """Run one sweep and return its report."""
        now = now or dt.datetime.now()
        sweep_id = generate_correlation_id()
        report = SweepReport(started_at=now)

        with LogContext(correlation_id=sweep_id):
            tasks, failures = self.plan(now, sweep_id)
            for failure in failures:
                report.add(failure)

            logger.info(
                f"Auto-invoicing sweep started with {len(tasks)} tasks "
                f"on {self.max_workers} workers"
            )

            if self.max_workers == 1:
                results = [self.process_task(task) for task in tasks]
            else:
                with ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="auto-invoice",
                ) as executor:
                    results = list(executor.map(self.process_task, tasks))

            for result in results:
                report.add(result)

            report.finished_at = dt.datetime.now()
            logger.info(f"Auto-invoicing sweep finished: {report.summary()}")

        return report

    def process_task(self, task: InvoicingTask) -> TaskResult:
        """Bill one (project, contract) pair, capturing any failure."""
        project, contract = task.project, task.contract

        with LogContext(
            correlation_id=task.sweep_id or generate_correlation_id(),
            project_id=project.id,
            contract_id=contract.id,
        ):
            try:
                return self._bill(task)
            except DuplicateInvoiceError as e:
                logger.info(f"Skipping already invoiced period: {e}")
                return self._skipped(
                    task, f"already invoiced by {e.existing_invoice_number}"
                )
            except RecordAlreadyInvoicedError as e:
                # Another contract of the project stored its invoice first.
                logger.info(f"Skipping records billed concurrently: {e}")
                return self._skipped(
                    task, f"records already invoiced: {', '.join(e.links)}"
                )
            except Exception as e:
                error_type = self.error_classifier.classify(e)
                logger.error(
                    f"Auto-invoicing failed for project {project.id} "
                    f"contract {contract.id}: {type(e).__name__}: {e}",
                    exc_info=True,
                    extra={"error_type": error_type.value},
                )
                return TaskResult(
                    project_id=project.id,
                    contract_id=contract.id,
                    outcome=TaskOutcome.FAILED,
                    error=f"{type(e).__name__}: {e}",
                )

    def _bill(self, task: InvoicingTask) -> TaskResult:
        project, contract, period = task.project, task.contract, task.period

        existing = self.repository.find_existing_invoice(
            project.id, period, contract_id=contract.id
        )
        if existing is not None:
            logger.debug(f"Period {period.label()} already has {existing.invoice_number}")
            return self._skipped(task, f"already invoiced by {existing.invoice_number}")

        model = billing_model_for_contract(contract)
        if model is None:
            return self._skipped(
                task, f"unsupported contract type {contract.contract_type.value}"
            )

        config = resolve_billing_configuration(
            self.settings, contract.billing_cycle, auto_invoice=True
        )
        result = self.calculator.calculate_for_model(
            project.id, model, period.start, period.end, config, as_of=task.now
        )

        if not result.is_billable:
            return self._skipped(task, f"nothing to bill ({result.amount})")

        invoice = self.generator.generate(
            result,
            project.id,
            project.client_id,
            config,
            contract_id=contract.id,
            billing_period=period,
            now=task.now,
        )
        return TaskResult(
            project_id=project.id,
            contract_id=contract.id,
            outcome=TaskOutcome.GENERATED,
            invoice=invoice,
        )

    @staticmethod
    def _skipped(task: InvoicingTask, reason: str) -> TaskResult:
        return TaskResult(
            project_id=task.project.id,
            contract_id=task.contract.id,
            outcome=TaskOutcome.SKIPPED,
            reason=reason,
        )
