"""
BugSage - Retry Utilities
=========================

Exponential backoff for calls to the text-generation providers and
other flaky network dependencies.

Usage:
    from shared.utils.retry import with_retry, RetryConfig

    @with_retry(RetryConfig(max_attempts=3, retryable_exceptions=(httpx.TransportError,)))
    async def call_provider():
        return await client.post("/api/generate", json=payload)
"""

import asyncio
from dataclasses import dataclass, field
from functools import wraps
from typing import Callable, Type, TypeVar, Any, Optional
from collections.abc import Awaitable

from shared.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts (including the first)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay, in seconds
        backoff_multiplier: Growth factor between successive delays
        retryable_exceptions: Exception types that trigger a retry;
            anything else propagates immediately
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    retryable_exceptions: tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (Exception,)
    )


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Delay before retry number ``attempt + 1`` (``attempt`` is 0-indexed)."""
    delay = config.base_delay * (config.backoff_multiplier ** attempt)
    return min(delay, config.max_delay)


def with_retry(config: Optional[RetryConfig] = None):
    """
    Decorator adding retry-with-backoff to an async function.

    The last exception is re-raised once ``max_attempts`` is exhausted.
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(config.max_attempts):
                try:
                    return await func(*args, **kwargs)

                except config.retryable_exceptions as e:
                    if attempt + 1 >= config.max_attempts:
                        logger.error(
                            f"All {config.max_attempts} attempts exhausted for {func.__name__}",
                            extra={
                                "function": func.__name__,
                                "error": str(e),
                                "attempts": config.max_attempts
                            }
                        )
                        raise

                    delay = calculate_delay(attempt, config)

                    logger.warning(
                        f"Retry {attempt + 1}/{config.max_attempts} for {func.__name__} after {delay:.2f}s",
                        extra={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "delay": delay,
                            "error": str(e)
                        }
                    )

                    await asyncio.sleep(delay)

            raise RuntimeError("Retry loop exited unexpectedly")

        return wrapper
    return decorator


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    **kwargs: Any
) -> T:
    """
    Call ``func`` with retries, for one-off calls where a decorator is awkward.

    Example:
        completion = await retry_async(
            client.chat.completions.create,
            model="gpt-4-turbo-preview",
            messages=messages,
            config=RetryConfig(max_attempts=3),
        )
    """
    @with_retry(config)
    async def wrapper() -> T:
        return await func(*args, **kwargs)

    return await wrapper()
