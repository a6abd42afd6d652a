"""MultiBillingEngine: single entry point to the billing engine.

The engine wires the calculators, the mixed-model aggregator, the invoice
generator, the auto-invoicing scheduler and the profitability analyzer
around one repository. Every data-access call goes through a
RetryingRepository, so transient storage failures are retried while
business errors surface immediately.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Union

from billing_engine.aggregators.mixed_billing_aggregator import MixedBillingAggregator
from billing_engine.calculators.billing_calculator import BillingCalculator, Moment
from billing_engine.calculators.billing_models import BillingModel, FixedFeeModel
from billing_engine.calculators.billing_result import BillingResult
from billing_engine.config.billing import (
    BillingConfiguration,
    resolve_billing_configuration,
)
from billing_engine.config.settings import BillingSystemConfig, get_config
from billing_engine.invoicing.generator import InvoiceGenerator
from billing_engine.models import BillingCycle, Invoice
from billing_engine.reporting.profitability import (
    ProfitabilityAnalyzer,
    ProfitabilityReport,
)
from billing_engine.scheduling.auto_invoicer import AutoInvoicingScheduler
from billing_engine.scheduling.sweep_report import SweepReport
from billing_engine.services.retry_handler import RetryHandler
from billing_engine.storage.base import BillingRepository
from billing_engine.storage.retrying import RetryingRepository
from billing_engine.utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)


class MultiBillingEngine:
    """Computes, invoices and reports on project billing.

    Args:
        repository: Store holding projects, contracts and ledger data
        settings: Application settings (default: global configuration)
        max_workers: Scheduler worker threads (default from settings)
        retry_handler: Retry policy for data access (default from settings)

    Example:
        >>> engine = MultiBillingEngine(InMemoryBillingRepository())
        >>> config = engine.default_configuration(tax_rate=10)
        >>> result = engine.calculate_hourly(
        ...     "P1", dt.datetime(2024, 5, 1), dt.datetime(2024, 5, 31), config
        ... )
        >>> invoice = engine.generate_invoice(result, "P1", "C1", config)
    """

    def __init__(
        self,
        repository: BillingRepository,
        settings: Optional[BillingSystemConfig] = None,
        max_workers: Optional[int] = None,
        retry_handler: Optional[RetryHandler] = None,
    ):
        self.settings = settings or get_config()
        self.retry_handler = retry_handler or RetryHandler(
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_delay,
        )
        self.repository = RetryingRepository(repository, self.retry_handler)

        self.calculator = BillingCalculator(self.repository)
        self.aggregator = MixedBillingAggregator(self.calculator)
        self.generator = InvoiceGenerator(
            self.repository,
            number_prefix=self.settings.invoice_number_prefix,
            late_fee_percentage=self.settings.late_fee_percentage,
        )
        self.scheduler = AutoInvoicingScheduler(
            self.repository,
            self.calculator,
            self.generator,
            self.settings,
            max_workers=max_workers or self.settings.scheduler_max_workers,
        )
        self.analyzer = ProfitabilityAnalyzer(self.repository)

    def default_configuration(
        self, billing_cycle: Optional[BillingCycle] = None, **overrides: Any
    ) -> BillingConfiguration:
        """Resolve a BillingConfiguration from settings plus overrides."""
        return resolve_billing_configuration(self.settings, billing_cycle, **overrides)

    # Calculations

    def calculate_hourly(
        self,
        project_id: str,
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
    ) -> BillingResult:
        return self.calculator.calculate_hourly(project_id, start_date, end_date, config)

    def calculate_fixed_fee(
        self,
        project_id: str,
        billing_model: Union[FixedFeeModel, Mapping[str, Any]],
        config: BillingConfiguration,
        as_of: Optional[dt.datetime] = None,
    ) -> BillingResult:
        if not isinstance(billing_model, FixedFeeModel):
            billing_model = FixedFeeModel.model_validate(billing_model)
        return self.calculator.calculate_fixed_fee(
            project_id, billing_model, config, as_of=as_of
        )

    def calculate_retainer(
        self,
        project_id: str,
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
    ) -> BillingResult:
        return self.calculator.calculate_retainer(
            project_id, start_date, end_date, config
        )

    def calculate_subscription(
        self,
        project_id: str,
        billing_period: dt.datetime,
        config: BillingConfiguration,
    ) -> BillingResult:
        return self.calculator.calculate_subscription(project_id, billing_period, config)

    def calculate_mixed(
        self,
        project_id: str,
        billing_models: Iterable[Union[Mapping[str, Any], BillingModel]],
        start_date: Moment,
        end_date: Moment,
        config: BillingConfiguration,
        as_of: Optional[dt.datetime] = None,
    ) -> BillingResult:
        return self.aggregator.calculate_mixed(
            project_id, billing_models, start_date, end_date, config, as_of=as_of
        )

    # Invoicing

    def generate_invoice(
        self,
        result: BillingResult,
        project_id: str,
        client_id: str,
        config: BillingConfiguration,
        contract_id: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> Invoice:
        return self.generator.generate(
            result, project_id, client_id, config, contract_id=contract_id, now=now
        )

    @log_function_call
    def process_auto_invoicing(self, now: Optional[dt.datetime] = None) -> SweepReport:
        """Run one auto-invoicing sweep over every active project."""
        return self.scheduler.run(now)

    @log_function_call
    def mark_overdue_invoices(self, now: Optional[dt.datetime] = None) -> List[Invoice]:
        return self.generator.mark_overdue_invoices(now)

    @log_function_call
    def apply_late_fees(self, percentage: Optional[Decimal] = None) -> List[Invoice]:
        """Charge the one-time late fee on OVERDUE invoices (default from settings)."""
        return self.generator.apply_late_fees(percentage)

    # Reporting

    def get_project_profitability(self, project_id: str) -> ProfitabilityReport:
        return self.analyzer.analyze(project_id)
