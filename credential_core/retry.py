"""
Store Retry
===========
Re-runs an async store operation while it keeps failing with a retryable
CredentialError, sleeping between attempts.

The wait doubles per attempt (``base_delay``, ``2 * base_delay``, ...) up to
``max_delay``. With jitter each wait is scaled by a random factor in
[0.5, 1.5) so that several sweepers do not hammer a recovering database in
lockstep.
"""

import asyncio
import random
from typing import Awaitable, Callable, Iterable, Optional, Type, TypeVar

import structlog

from .errors import RetryExhausted, StoreUnavailable

logger = structlog.get_logger(__name__)

T = TypeVar('T')


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Seconds to wait after failed ``attempt`` (1-based)."""
    delay = min(base_delay * (exponential_base ** (attempt - 1)), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Iterable[Type[Exception]]] = None,
    **kwargs,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying transient store failures.

    Only ``StoreUnavailable`` is retried unless ``retryable_exceptions``
    says otherwise; every other error propagates on the first attempt.

    Raises:
        RetryExhausted: ``max_attempts`` attempts all failed. The final
            error is kept on ``last_exception`` and chained as the cause.
    """
    retryable = tuple(retryable_exceptions or (StoreUnavailable,))
    name = getattr(func, "__name__", repr(func))

    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable as e:
            if attempt == max_attempts:
                logger.error(
                    "Giving up on store operation",
                    operation=name,
                    attempts=attempt,
                    error_type=type(e).__name__,
                )
                raise RetryExhausted(
                    f"{name} failed {max_attempts} times",
                    last_exception=e,
                ) from e

            delay = backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
            logger.warning(
                "Store operation failed, backing off",
                operation=name,
                attempt=attempt,
                delay=round(delay, 3),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)

    raise RetryExhausted(f"{name} was not attempted (max_attempts={max_attempts})")
