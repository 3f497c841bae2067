"""
Retry utilities with exponential backoff.

Used for idempotent reads against the DCA backend. Agent calls are never
retried.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar, ParamSpec

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 0.5  # Base delay in seconds
    max_delay: float = 5.0  # Maximum delay in seconds
    exponential_base: float = 2.0
    retryable_exceptions: tuple = field(
        default_factory=lambda: (httpx.TransportError, TimeoutError, ConnectionError)
    )


DEFAULT_RETRY_CONFIG = RetryConfig()


async def execute_with_retry(
    func: Callable[P, Awaitable[T]],
    *args: P.args,
    config: RetryConfig | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    **kwargs: P.kwargs,
) -> T:
    """
    Await ``func`` with retry logic and exponential backoff.

    Args:
        func: Coroutine function to execute
        *args: Positional arguments for the function
        config: Retry configuration (uses defaults if None)
        on_retry: Optional callback called on each retry (receives attempt number and exception)
        **kwargs: Keyword arguments for the function

    Returns:
        The function result

    Raises:
        The last exception once all retries are exhausted. Exceptions outside
        ``config.retryable_exceptions`` propagate immediately.
    """
    config = config or DEFAULT_RETRY_CONFIG
    name = getattr(func, "__name__", repr(func))

    for attempt in range(config.max_retries):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt >= config.max_retries - 1:
                logger.error(
                    "All %d attempts failed for %s. Last error: %s",
                    config.max_retries,
                    name,
                    e,
                )
                raise

            delay = min(
                config.base_delay * (config.exponential_base**attempt),
                config.max_delay,
            )
            logger.warning(
                "Attempt %d/%d failed for %s: %s. Retrying in %.1fs...",
                attempt + 1,
                config.max_retries,
                name,
                e,
                delay,
            )
            if on_retry:
                on_retry(attempt + 1, e)
            await asyncio.sleep(delay)

    raise RuntimeError(f"Unexpected state in retry logic for {name}")
