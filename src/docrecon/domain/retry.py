"""Exponential backoff for a single fallible async operation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .errors import ExtractionFailure, PermanentExtractionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 4
DEFAULT_DELAY = 2.5  # seconds


def is_retryable(error: BaseException) -> bool:
    """Default policy: every extraction failure except permanent ones."""
    return isinstance(error, ExtractionFailure) and not isinstance(
        error, PermanentExtractionFailure
    )


async def with_backoff(
    operation: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    delay: float = DEFAULT_DELAY,
    should_retry: Callable[[BaseException], bool] = is_retryable,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying failures with a doubling delay.

    Up to ``retries`` retries follow the first attempt. The delay before
    retry ``n`` is ``delay * 2 ** (n - 1)``. Once retries are exhausted, or
    ``should_retry`` rejects the failure, the last error propagates unchanged.
    """
    if retries < 0:
        raise ValueError(f"retries must be >= 0, got {retries}")

    remaining = retries
    current_delay = delay
    while True:
        try:
            return await operation()
        except Exception as e:
            if remaining <= 0 or not should_retry(e):
                raise
            logger.warning(
                f"Attempt failed ({e}); retrying in {current_delay:.1f}s "
                f"({remaining} left)"
            )
            await sleep(current_delay)
            current_delay *= 2
            remaining -= 1
