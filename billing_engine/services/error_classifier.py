"""
Error classification for distinguishing retryable storage failures from
business errors that must surface to the caller.
"""

import logging
import socket
import threading
from enum import Enum
from typing import Any, Dict, List

from pydantic import ValidationError

from billing_engine.exceptions import (
    BillingError,
    NoActiveContractError,
    StorageError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)

# Failures that are worth another attempt against the store.
TRANSIENT_ERRORS = (
    TransientStorageError,
    ConnectionError,
    TimeoutError,
    socket.timeout,
)


class ErrorType(Enum):
    """Classification of error types."""

    RETRYABLE = "retryable"  # transient storage / network failures
    FATAL = "fatal"  # business preconditions, invalid data, permanent storage errors
    UNKNOWN = "unknown"


class ErrorClassifier:
    """
    Classifies exceptions raised while billing a project.

    Business errors (missing contracts, duplicate invoices, invalid periods)
    and validation failures are FATAL: retrying cannot change the outcome.
    Transient storage and network errors are RETRYABLE. Anything else is
    UNKNOWN and treated as not retryable.
    """

    def __init__(self):
        # Scheduler workers share one classifier.
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {t.value: 0 for t in ErrorType}
        self._stats["total"] = 0

    def classify(self, exception: Exception) -> ErrorType:
        error_type = self._classify(exception)
        with self._lock:
            self._stats["total"] += 1
            self._stats[error_type.value] += 1
        return error_type

    @staticmethod
    def _classify(exception: Exception) -> ErrorType:
        if isinstance(exception, TRANSIENT_ERRORS):
            return ErrorType.RETRYABLE
        if isinstance(exception, (BillingError, ValidationError, StorageError)):
            return ErrorType.FATAL
        return ErrorType.UNKNOWN

    def is_retryable(self, exception: Exception) -> bool:
        return self.classify(exception) == ErrorType.RETRYABLE

    def get_error_description(self, exception: Exception) -> str:
        """
        Get a human-readable error description.

        Args:
            exception: The exception to describe

        Returns:
            Description including the classification
        """
        error_type = self.classify(exception)

        if isinstance(exception, NoActiveContractError):
            return (
                f"Missing active {exception.contract_type} contract "
                f"(project {exception.project_id}) - {error_type.value}"
            )
        if isinstance(exception, ValidationError):
            return (
                f"Invalid ledger data ({exception.error_count()} error(s)) "
                f"- {error_type.value}"
            )
        if isinstance(exception, TRANSIENT_ERRORS):
            return f"Transient storage error: {exception} - {error_type.value}"

        return f"{type(exception).__name__}: {exception} - {error_type.value}"

    def classify_batch(self, exceptions: List[Exception]) -> List[ErrorType]:
        return [self.classify(exc) for exc in exceptions]

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.copy()

    def reset_statistics(self):
        with self._lock:
            self._stats = {t.value: 0 for t in ErrorType}
            self._stats["total"] = 0
