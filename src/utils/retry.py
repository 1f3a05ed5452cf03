"""
Retry utilities with exponential backoff.

Used around upstream calls whose failures are transient (timeouts,
refused connections).
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Callable, TypeVar, Type, Optional

from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    exceptions: tuple[Type[Exception], ...] = field(default_factory=lambda: (Exception,))

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        if self.jitter:
            delay = delay * (0.5 + random.random())

        return delay


async def retry_async(
    func: Callable[..., T],
    *args,
    config: Optional[RetryConfig] = None,
    **kwargs,
) -> T:
    """
    Retry an async function with the given configuration.

    Args:
        func: Async function to retry
        *args: Positional arguments for the function
        config: Retry configuration
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call

    Raises:
        The last exception once all attempts are exhausted. Exceptions not
        listed in ``config.exceptions`` propagate immediately.
    """
    if config is None:
        config = RetryConfig()

    last_exception: Optional[Exception] = None

    for attempt in range(max(config.max_attempts, 1)):
        try:
            return await func(*args, **kwargs)
        except config.exceptions as e:
            last_exception = e

            if attempt < config.max_attempts - 1:
                delay = config.calculate_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"All {config.max_attempts} attempts failed for {getattr(func, '__name__', func)}"
                )

    raise last_exception

