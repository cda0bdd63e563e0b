"""
Retry with exponential backoff for outbound provider calls.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    # Further filter on caught exceptions; False stops retrying at once.
    should_retry: Optional[Callable[[Exception], bool]] = None

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate the delay before the next attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = min(config.base_delay * (config.exponential_base ** attempt), config.max_delay)
    if config.jitter:
        delay *= random.uniform(0.5, 1.5)
    return delay


def call_with_retry(
    func: Callable[[], T],
    config: RetryConfig,
    description: str = "call",
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> T:
    """
    Run ``func`` until it succeeds or the retry budget is spent.

    Args:
        func: Zero-argument callable to run
        config: Retry configuration
        description: Label used in log messages
        sleep: Sleep function (injectable for tests)
        on_retry: Optional callback receiving (exception, attempt)

    Returns:
        Whatever ``func`` returns

    Raises:
        The last exception raised by ``func`` once all attempts fail
    """
    for attempt in range(config.max_retries + 1):
        try:
            return func()
        except config.retryable_exceptions as e:
            if config.should_retry is not None and not config.should_retry(e):
                logger.error("%s failed with a non-retryable error: %s", description, e)
                raise
            if attempt >= config.max_retries:
                logger.error(
                    "%s failed after %d attempt(s): %s", description, attempt + 1, e
                )
                raise
            delay = calculate_delay(attempt, config)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.2fs",
                description, attempt + 1, config.max_retries + 1, e, delay,
            )
            if on_retry:
                on_retry(e, attempt)
            sleep(delay)
    raise RuntimeError("unreachable")
