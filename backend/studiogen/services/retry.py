"""Exponential-backoff retry for transient provider failures.

Wraps a fallible coroutine factory with tenacity so that rate-limit (429) and
overload (503) failures are retried on a doubling schedule while every other
error propagates unchanged on the first failure.

Usage:
    from studiogen.services.retry import with_retry

    response = await with_retry(lambda: client.aio.models.generate_content(...))
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from google.genai.errors import APIError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from studiogen.errors import TRANSIENT_STATUS_CODES, TransientServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Return True only for overload / rate-limit failures (429, 503)."""
    if isinstance(exc, TransientServiceError):
        return True
    if isinstance(exc, APIError):
        return getattr(exc, "code", 0) in TRANSIENT_STATUS_CODES
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Transient failure on attempt {retry_state.attempt_number} "
        f"({exc}); retrying in {delay:.1f}s"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Invoke ``operation`` and retry it on transient failures.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per call.
        max_attempts: Number of retries after the first call.
        initial_delay: Seconds to wait before the first retry; doubles after
            each subsequent failure (no jitter).
        sleep: Awaitable sleep used between attempts.

    Returns:
        Whatever ``operation`` resolves to.

    Raises:
        The last exception from ``operation`` when it is terminal or when the
        retries are exhausted.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts + 1),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2, min=0),
        retry=retry_if_exception(is_transient),
        before_sleep=_log_retry,
        reraise=True,
        sleep=sleep,
    )
    # Iterating keeps the await in our hands, so plain lambdas returning a
    # coroutine are run rather than handed back unawaited.
    async for attempt in retrying:
        with attempt:
            return await operation()
