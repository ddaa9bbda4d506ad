"""
Retry utilities for idempotent storage operations.

Implements exponential backoff retry logic with jitter.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.05,
        max_delay: float = 1.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Total number of attempts, including the first one
            initial_delay: Delay before the second attempt, in seconds
            max_delay: Upper bound for any single delay, in seconds
            exponential_base: Base for exponential backoff
            jitter: Whether to add random jitter to delays
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @classmethod
    def for_consistency(cls) -> "RetryConfig":
        """Retry policy for goal currentValue recomputation, from settings."""
        settings = get_settings()
        return cls(
            max_attempts=settings.CONSISTENCY_MAX_ATTEMPTS,
            initial_delay=settings.CONSISTENCY_INITIAL_DELAY,
            max_delay=settings.CONSISTENCY_MAX_DELAY,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based failed attempt."""
        delay = min(self.initial_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay += delay * 0.1 * random.random()
        return delay


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    **kwargs: Any,
) -> T:
    """
    Await `func(*args, **kwargs)`, retrying with exponential backoff.

    Only safe for idempotent operations.

    Raises:
        The last exception once every attempt has failed
    """
    if config is None:
        config = RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt == config.max_attempts - 1:
                logger.error(
                    f"Retry failed after {config.max_attempts} attempts: {e}",
                    exc_info=True,
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"Retry attempt {attempt + 1}/{config.max_attempts} after {delay:.2f}s: {e}"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic failed unexpectedly")
