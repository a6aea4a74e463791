"""
Caller-side retry for governed calls.

The governor itself never retries. Callers that want resilience wrap their
call in ``retry_async``; governor refusals (blocked, rate limited,
throttled) are never retried, transport errors only when retryable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Backoff policy for retry_async.

    Attributes:
        max_attempts: Total attempts including the first call
        backoff_base: Delay before the second attempt, in seconds
        backoff_max: Upper bound for any single delay
        backoff_multiplier: Growth factor between attempts
        honor_retry_after: Wait at least the server's Retry-After hint
    """
    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0
    backoff_multiplier: float = 2.0
    honor_retry_after: bool = True


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, TransportError):
        return exc.is_retryable
    return isinstance(exc, (asyncio.TimeoutError, ConnectionError))


def _delay_for(exc: BaseException, backoff: float, config: RetryConfig) -> float:
    retry_after = getattr(exc, "retry_after", None)
    if config.honor_retry_after and retry_after:
        return min(max(backoff, retry_after), config.backoff_max)
    return backoff


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    **kwargs: Any,
) -> Any:
    """
    Await ``func(*args, **kwargs)``, retrying transient failures.

    Usage:
        books = await retry_async(governor.get, "/api/books", config=RetryConfig())

    Args:
        func: Coroutine function, usually a governor method
        config: Backoff policy (defaults if None)
        on_retry: Called as on_retry(attempt, exc) before each wait

    Raises:
        The first non-retryable exception, or the last one once attempts
        are exhausted
    """
    config = config or RetryConfig()
    backoff = config.backoff_base
    attempt = 0

    while True:
        attempt += 1
        try:
            return await func(*args, **kwargs)
        except Exception as exc:
            if not _is_retryable(exc):
                raise
            if attempt >= config.max_attempts:
                logger.warning(f"Giving up after {attempt} attempts: {exc}")
                raise

            delay = _delay_for(exc, backoff, config)
            logger.debug(f"Attempt {attempt} failed: {exc}, retrying in {delay:.1f}s")
            if on_retry:
                on_retry(attempt, exc)

            await asyncio.sleep(delay)
            backoff = min(backoff * config.backoff_multiplier, config.backoff_max)
