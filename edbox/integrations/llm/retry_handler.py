"""
Retry handler for backend calls.

This module provides bounded retry with exponential backoff for
transport-level failures of generative backend calls.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from ...core.models.errors import BackendError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryHandler:
    """
    Retry handler with exponential backoff.

    Only network-class `BackendError`s are retried. Authentication, quota,
    timeout and malformed-output failures surface on the first attempt so
    the caller can react to them (re-authenticate, back off, repair).
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_multiplier: float = 2.0,
        jitter: bool = True
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of retries after the first attempt
            base_delay: Base delay in seconds
            max_delay: Maximum delay in seconds
            backoff_multiplier: Backoff multiplier
            jitter: Whether to add jitter
        """
        self.max_retries = max(0, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_multiplier = backoff_multiplier
        self.jitter = jitter

        logger.debug(f"RetryHandler initialized with max_retries: {self.max_retries}")

    async def execute_with_retry(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Await `func(*args, **kwargs)`, retrying retryable failures.

        Raises:
            Exception: The last error once retries are exhausted, or the
                first non-retryable error
        """
        attempt = 0
        while True:
            try:
                result = await func(*args, **kwargs)
                if attempt > 0:
                    logger.info(f"Call succeeded after {attempt} retries")
                return result
            except Exception as e:
                if not self.is_retryable(e):
                    raise

                if attempt >= self.max_retries:
                    logger.error(f"All {self.max_retries} retries exhausted. Last error: {e}")
                    raise

                delay = self.calculate_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay:.2f} seconds..."
                )
                await asyncio.sleep(delay)
                attempt += 1

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        return isinstance(error, BackendError) and error.retryable

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a retry attempt.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        delay = min(self.base_delay * (self.backoff_multiplier ** attempt), self.max_delay)

        if self.jitter:
            jitter_range = delay * 0.1
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

