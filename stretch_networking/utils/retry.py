"""
Retry utilities for cluster gateway calls.

This module provides a helper for retrying transient control-plane failures
with exponential backoff and jitter. Only gateway implementations use it; the
networking engine itself never retries and leaves that to the reconciliation
cadence.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Optional, Tuple, Type
from dataclasses import dataclass

from ..exceptions import StretchNetworkingError, GatewayError, OperationTimeoutError


logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0  # Base delay in seconds
    max_delay: float = 60.0  # Maximum delay in seconds
    exponential_base: float = 2.0
    jitter: bool = True

    # Exception types that should trigger retries
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        ConnectionError,
        asyncio.TimeoutError,
        OSError,
    )

    # Exception types that should NOT trigger retries
    non_retryable_exceptions: Tuple[Type[Exception], ...] = (
        ValueError,
        TypeError,
        KeyError,
        AttributeError,
    )


class RetryExhaustedError(StretchNetworkingError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, operation: str, attempts: int, last_exception: Exception):
        super().__init__(
            message=f"Retry exhausted for operation '{operation}' after {attempts} attempts",
            details={
                "operation": operation,
                "attempts": attempts,
                "last_exception": str(last_exception),
                "last_exception_type": type(last_exception).__name__
            },
            cause=last_exception,
            cluster_id=getattr(last_exception, "cluster_id", None)
        )


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate the delay for a given retry attempt.

    Args:
        attempt: The current attempt number (0-based)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = config.base_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        # Up to 25% jitter
        jitter_amount = delay * 0.25
        delay += random.uniform(-jitter_amount, jitter_amount)
        delay = max(0, delay)

    return delay


def should_retry(exception: Exception, config: RetryConfig) -> bool:
    """Determine if an exception should trigger a retry.

    Args:
        exception: The exception that occurred
        config: Retry configuration

    Returns:
        True if the exception should trigger a retry
    """
    if isinstance(exception, config.non_retryable_exceptions):
        return False

    if isinstance(exception, GatewayError):
        return exception.retryable

    if isinstance(exception, OperationTimeoutError):
        return True

    # Other engine errors describe state, not a flaky call
    if isinstance(exception, StretchNetworkingError):
        return False

    return isinstance(exception, config.retryable_exceptions)


async def retry_async_operation(
    operation: Callable,
    operation_name: str,
    config: Optional[RetryConfig] = None,
    *args,
    **kwargs
) -> Any:
    """Retry an async operation with the given configuration.

    Args:
        operation: The async function to retry
        operation_name: Name of the operation for logging
        config: Retry configuration
        *args: Arguments for the operation
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation
    """
    if config is None:
        config = RetryConfig()

    last_exception = None

    for attempt in range(config.max_attempts):
        try:
            return await operation(*args, **kwargs)

        except Exception as e:
            last_exception = e

            if not should_retry(e, config):
                logger.debug(f"Not retrying {operation_name} due to non-retryable exception: {e}")
                raise

            if attempt == config.max_attempts - 1:
                logger.warning(f"Retry exhausted for {operation_name} after {attempt + 1} attempts")
                break

            delay = calculate_delay(attempt, config)
            logger.info(f"Retrying {operation_name} in {delay:.2f}s (attempt {attempt + 1}/{config.max_attempts})")
            await asyncio.sleep(delay)

    raise RetryExhaustedError(operation_name, config.max_attempts, last_exception)

