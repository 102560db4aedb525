"""Retry and circuit-breaker helpers for AI collaborator calls."""

import functools
import random
import time
from typing import Any, Callable, Optional, TypeVar

from surveyforge.core.logging import get_logger

T = TypeVar("T")

logger = get_logger("surveyforge.retry")


class CircuitBreakerError(Exception):
    """Raised when the circuit breaker is open."""


class CircuitBreaker:
    """
    Stops calling a failing provider after repeated errors.

    The circuit opens after ``failure_threshold`` consecutive failures and
    lets a single trial call through once ``recovery_timeout`` seconds have
    passed (half-open). A successful trial closes it again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: type[Exception] = Exception,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before attempting recovery
            expected_exception: Exception type that counts as failure
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = "closed"  # closed, open, half_open

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Execute function with circuit breaker protection.

        Raises:
            CircuitBreakerError: If circuit is open
            Exception: Original exception from function call
        """
        if self.state == "open":
            if (
                self.last_failure_time is not None
                and time.time() - self.last_failure_time > self.recovery_timeout
            ):
                self.state = "half_open"
                logger.info("Circuit breaker transitioning to half-open state")
            else:
                raise CircuitBreakerError(
                    f"Circuit breaker is open. Will retry after {self.recovery_timeout}s"
                )

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self.failure_count += 1
            self.last_failure_time = time.time()
            if self.state == "half_open" or self.failure_count >= self.failure_threshold:
                self.state = "open"
                logger.warning(f"Circuit breaker opened after {self.failure_count} failures")
            raise

        if self.state == "half_open":
            logger.info("Circuit breaker closed after successful call")
        self.state = "closed"
        self.failure_count = 0
        return result


def retry_with_exponential_backoff(
    max_retries: int = 2,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = (RuntimeError,),
    circuit_breaker: Optional[CircuitBreaker] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for retrying function calls with exponential backoff.

    An open circuit breaker is never retried; the CircuitBreakerError
    propagates at once.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds before first retry
        max_delay: Maximum delay in seconds between retries
        exponential_base: Base for exponential backoff calculation
        jitter: If True, add up to 10% random jitter to each delay
        retryable_exceptions: Exception types that trigger a retry
        circuit_breaker: Optional breaker every attempt goes through
        sleep: Sleep function (injectable for tests)

    Returns:
        Decorator function
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay
            attempts = max(1, max_retries + 1)

            for attempt in range(attempts):
                try:
                    if circuit_breaker is not None:
                        return circuit_breaker.call(func, *args, **kwargs)
                    return func(*args, **kwargs)
                except CircuitBreakerError:
                    logger.error(
                        f"Circuit breaker open for {func.__name__}",
                        context={"function": func.__name__},
                    )
                    raise
                except retryable_exceptions as e:
                    if attempt == attempts - 1:
                        logger.error(
                            f"All {attempts} attempts failed for {func.__name__}",
                            context={"function": func.__name__, "error": str(e)},
                        )
                        raise

                    actual_delay = delay + (delay * 0.1 * random.random() if jitter else 0.0)
                    logger.warning(
                        f"Attempt {attempt + 1}/{attempts} failed: {e}. "
                        f"Retrying in {actual_delay:.2f}s...",
                        context={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "delay": actual_delay,
                        },
                    )
                    sleep(actual_delay)
                    delay = min(delay * exponential_base, max_delay)

        return wrapper

    return decorator
