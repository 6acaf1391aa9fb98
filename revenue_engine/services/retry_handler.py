"""
Retry handler with exponential backoff, jitter and a circuit breaker.

Used for every side effect of a billing run that can fail transiently:
Google Sheets reads and carryover ledger writes.
"""

import logging
import random
import socket
import threading
import time
from typing import Any, Callable, Optional

import requests.exceptions
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

# Filesystem errors that retrying cannot fix
_PERMANENT_OS_ERRORS = (FileNotFoundError, IsADirectoryError, NotADirectoryError)


class RetryExhaustedException(Exception):
    """Raised when all retry attempts have been exhausted."""


class CircuitBreakerError(Exception):
    """Raised when the circuit breaker is open and calls are refused."""


def is_transient_error(exception: Exception) -> bool:
    """
    Decide whether an error is worth retrying.

    Transient errors are Google API rate limits and server errors, network
    failures and timeouts, and filesystem errors other than missing paths
    (locked or busy ledger files).
    """
    if isinstance(exception, HttpError):
        status_code = exception.resp.status
        return status_code == 429 or 500 <= status_code < 600

    if isinstance(
        exception,
        (
            socket.timeout,
            TimeoutError,
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
        ),
    ):
        return True

    if isinstance(exception, OSError):
        return not isinstance(exception, _PERMANENT_OS_ERRORS)

    return False


class RetryHandler:
    """
    Executes callables with retries, backoff and a circuit breaker.

    After ``circuit_breaker_threshold`` consecutive exhausted calls the
    breaker opens and further calls fail fast with CircuitBreakerError
    until ``circuit_breaker_timeout`` has passed. Thread-safe.

    Example:
        >>> handler = RetryHandler(max_retries=2, base_delay=0)
        >>> handler.execute_with_retry(lambda: 42)
        42
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2,
        jitter_factor: float = 0.1,
        circuit_breaker_threshold: int = 10,
        circuit_breaker_timeout: float = 60.0,
        retry_condition: Optional[Callable[[Exception], bool]] = None,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter_factor = jitter_factor
        self.circuit_breaker_threshold = circuit_breaker_threshold
        self.circuit_breaker_timeout = circuit_breaker_timeout
        self.retry_condition = retry_condition or is_transient_error

        self._breaker_open = False
        self._breaker_opened_at = 0.0
        self._consecutive_failures = 0

        self._total_calls = 0
        self._total_retries = 0
        self._total_failures = 0

        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "RetryHandler":
        """Build a handler from RevenueEngineConfig retry settings."""
        return cls(max_retries=config.max_retries, base_delay=config.retry_delay)

    def _calculate_delay(self, attempt: int) -> float:
        """Backoff delay for a 0-based attempt, capped and jittered."""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        jitter = random.uniform(-self.jitter_factor, self.jitter_factor) * delay
        return max(0.0, delay + jitter)

    def _breaker_refuses(self) -> bool:
        with self._lock:
            if not self._breaker_open:
                return False
            elapsed = time.time() - self._breaker_opened_at
            if elapsed >= self.circuit_breaker_timeout:
                logger.info("Circuit breaker half-open, allowing a trial call")
                return False
            return True

    def _record_success(self, retries: int) -> None:
        with self._lock:
            self._total_retries += retries
            self._consecutive_failures = 0
            if self._breaker_open:
                logger.info("Circuit breaker closed after successful call")
                self._breaker_open = False

    def _record_failure(self, retries: int) -> None:
        with self._lock:
            self._total_retries += retries
            self._total_failures += 1
            self._consecutive_failures += 1
            if (
                not self._breaker_open
                and self._consecutive_failures >= self.circuit_breaker_threshold
            ):
                logger.warning(
                    f"Circuit breaker opened after "
                    f"{self._consecutive_failures} failures"
                )
                self._breaker_open = True
                self._breaker_opened_at = time.time()

    def execute_with_retry(self, func: Callable, *args, **kwargs) -> Any:
        """
        Call ``func(*args, **kwargs)``, retrying transient errors.

        Returns:
            The function's result

        Raises:
            CircuitBreakerError: If the circuit breaker is open
            RetryExhaustedException: If every attempt failed transiently
            Exception: The original error when it is not retryable
        """
        with self._lock:
            self._total_calls += 1

        if self._breaker_refuses():
            raise CircuitBreakerError("Circuit breaker is open")

        func_name = getattr(func, "__name__", repr(func))

        for attempt in range(self.max_retries + 1):
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self.retry_condition(e):
                    logger.debug(f"Not retrying {func_name}: {type(e).__name__}")
                    raise

                if attempt >= self.max_retries:
                    logger.warning(
                        f"Max retries ({self.max_retries}) exceeded for {func_name}"
                    )
                    self._record_failure(attempt)
                    raise RetryExhaustedException(
                        f"Max retries ({self.max_retries}) exceeded. "
                        f"Last error: {type(e).__name__}: {e}"
                    ) from e

                delay = self._calculate_delay(attempt)
                logger.debug(
                    f"Retrying {func_name} in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}): "
                    f"{type(e).__name__}: {e}"
                )
                time.sleep(delay)
                continue

            if attempt > 0:
                logger.info(f"{func_name} succeeded after {attempt} retries")
            self._record_success(attempt)
            return result

        # Unreachable: the loop either returns or raises
        raise RetryExhaustedException(f"No attempts made for {func_name}")

    def get_retry_statistics(self) -> dict:
        """Get call, retry and failure counters plus breaker state."""
        with self._lock:
            return {
                "total_calls": self._total_calls,
                "total_retries": self._total_retries,
                "total_failures": self._total_failures,
                "circuit_breaker_open": self._breaker_open,
                "failure_count": self._consecutive_failures,
            }

    def reset_circuit_breaker(self) -> None:
        """Manually close the circuit breaker."""
        with self._lock:
            self._breaker_open = False
            self._consecutive_failures = 0
            self._breaker_opened_at = 0.0
        logger.info("Circuit breaker manually reset")
