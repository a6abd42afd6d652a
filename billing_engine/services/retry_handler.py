"""
Retry handler with exponential backoff, jitter, and circuit breaker pattern
for data-access calls.
"""

import logging
import random
import threading
import time
from typing import Any, Callable, Optional

from billing_engine.services.error_classifier import TRANSIENT_ERRORS

logger = logging.getLogger(__name__)


class RetryExhaustedException(Exception):
    """Raised when all retry attempts have been exhausted."""

    pass


class CircuitBreakerError(Exception):
    """Raised when the circuit breaker is open."""

    pass


class RetryHandler:
    """
    Retries transient storage failures with exponential backoff.

    Features:
    - Exponential backoff with configurable base and jitter
    - Circuit breaker that stops hammering a failing store
    - Thread-safe counters, so scheduler workers can share one handler
    - Business errors are re-raised immediately, never retried
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2,
        jitter_factor: float = 0.1,
        circuit_breaker_threshold: int = 10,
        circuit_breaker_timeout: float = 60.0,
        retry_condition: Optional[Callable[[Exception], bool]] = None,
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff (seconds)
            max_delay: Maximum delay between retries (seconds)
            exponential_base: Base for exponential backoff calculation
            jitter_factor: Factor for random jitter (0.0 to 1.0)
            circuit_breaker_threshold: Exhausted calls before opening the circuit
            circuit_breaker_timeout: Seconds before a half-open retry is allowed
            retry_condition: Custom predicate deciding whether to retry
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter_factor = jitter_factor
        self.circuit_breaker_threshold = circuit_breaker_threshold
        self.circuit_breaker_timeout = circuit_breaker_timeout
        self.retry_condition = retry_condition or self._default_retry_condition

        self._circuit_breaker_open = False
        self._circuit_breaker_opened_at = 0.0
        self._failure_count = 0

        self._total_calls = 0
        self._total_retries = 0
        self._total_failures = 0

        self._lock = threading.Lock()

    @staticmethod
    def _default_retry_condition(exception: Exception) -> bool:
        """Retry only transient storage and network errors."""
        return isinstance(exception, TRANSIENT_ERRORS)

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for exponential backoff with jitter.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds, never negative
        """
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        jitter = random.uniform(-self.jitter_factor, self.jitter_factor) * delay
        return max(0.0, delay + jitter)

    def _is_circuit_breaker_open(self) -> bool:
        with self._lock:
            if not self._circuit_breaker_open:
                return False

            elapsed = time.time() - self._circuit_breaker_opened_at
            if elapsed >= self.circuit_breaker_timeout:
                logger.info("Circuit breaker transitioning to half-open state")
                return False

            return True

    def _record_success(self):
        with self._lock:
            self._failure_count = 0
            if self._circuit_breaker_open:
                logger.info("Circuit breaker closed after successful execution")
                self._circuit_breaker_open = False

    def _record_failure(self):
        with self._lock:
            self._failure_count += 1
            self._total_failures += 1

            if (
                not self._circuit_breaker_open
                and self._failure_count >= self.circuit_breaker_threshold
            ):
                logger.warning(
                    f"Circuit breaker opened after {self._failure_count} failures"
                )
                self._circuit_breaker_open = True
                self._circuit_breaker_opened_at = time.time()

    def execute_with_retry(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute ``func`` and retry it on transient failures.

        Args:
            func: Callable to execute
            *args: Positional arguments for ``func``
            **kwargs: Keyword arguments for ``func``

        Returns:
            Result of ``func``

        Raises:
            CircuitBreakerError: If the circuit breaker is open
            RetryExhaustedException: If every attempt failed transiently
            Exception: The original exception when it is not retryable
        """
        with self._lock:
            self._total_calls += 1

        if self._is_circuit_breaker_open():
            raise CircuitBreakerError("Circuit breaker is open")

        func_name = getattr(func, "__name__", repr(func))

        for attempt in range(self.max_retries + 1):
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self.retry_condition(e):
                    logger.debug(
                        f"Not retrying {func_name} - {type(e).__name__} is not transient"
                    )
                    raise

                if attempt >= self.max_retries:
                    logger.warning(
                        f"Max retries ({self.max_retries}) exceeded for {func_name}"
                    )
                    with self._lock:
                        self._total_retries += attempt
                    self._record_failure()
                    raise RetryExhaustedException(
                        f"Max retries ({self.max_retries}) exceeded. "
                        f"Last error: {type(e).__name__}: {e}"
                    ) from e

                delay = self._calculate_delay(attempt)
                logger.debug(
                    f"Retrying {func_name} in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}). "
                    f"Error: {type(e).__name__}: {e}"
                )
                time.sleep(delay)
                continue

            if attempt > 0:
                logger.info(f"{func_name} succeeded after {attempt} retries")
                with self._lock:
                    self._total_retries += attempt
            self._record_success()
            return result

    def get_retry_statistics(self) -> dict:
        with self._lock:
            return {
                "total_calls": self._total_calls,
                "total_retries": self._total_retries,
                "total_failures": self._total_failures,
                "circuit_breaker_open": self._circuit_breaker_open,
                "failure_count": self._failure_count,
            }

    def reset_circuit_breaker(self):
        """Manually reset the circuit breaker."""
        with self._lock:
            self._circuit_breaker_open = False
            self._failure_count = 0
            self._circuit_breaker_opened_at = 0.0

        logger.info("Circuit breaker manually reset")

    def reset_statistics(self):
        with self._lock:
            self._total_calls = 0
            self._total_retries = 0
            self._total_failures = 0
