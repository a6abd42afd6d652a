"""
Resilience services for the billing engine.

This package provides:
- Exponential backoff with jitter for transient storage failures
- Circuit breaker pattern for a failing store
- Classification of retryable vs. fatal errors
"""

from .error_classifier import TRANSIENT_ERRORS, ErrorClassifier, ErrorType
from .retry_handler import CircuitBreakerError, RetryExhaustedException, RetryHandler

__all__ = [
    "CircuitBreakerError",
    "ErrorClassifier",
    "ErrorType",
    "RetryExhaustedException",
    "RetryHandler",
    "TRANSIENT_ERRORS",
]
